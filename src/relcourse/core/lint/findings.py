"""Lint findings and reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {"info": 0, "warning": 1, "error": 2}[self.value]


@dataclass
class Finding:
    """A single problem found in a document."""

    check: str
    severity: Severity
    message: str
    path: str
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check": self.check,
            "severity": self.severity.value,
            "message": self.message,
            "path": self.path,
            "line": self.line,
        }

    def __str__(self) -> str:
        location = f"{self.path}:{self.line}" if self.line else self.path
        return f"{location}: {self.severity.value} [{self.check}] {self.message}"


@dataclass
class LintReport:
    """Findings for a set of documents."""

    findings: List[Finding] = field(default_factory=list)
    files_checked: int = 0
    blocks_checked: int = 0

    def extend(self, findings: List[Finding]) -> None:
        self.findings.extend(findings)

    def sorted_findings(self) -> List[Finding]:
        return sorted(self.findings, key=lambda f: (f.path, f.line or 0, f.check))

    def count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity == severity)

    def fails(self, threshold: str | Severity) -> bool:
        """Check whether any finding is at or above the threshold.

        Args:
            threshold: "error", "warning", "info" or "never"
        """
        if threshold == "never":
            return False
        threshold = Severity(threshold)
        return any(f.severity.rank >= threshold.rank for f in self.findings)

    @property
    def has_errors(self) -> bool:
        return self.count(Severity.ERROR) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files_checked": self.files_checked,
            "blocks_checked": self.blocks_checked,
            "summary": {s.value: self.count(s) for s in Severity},
            "findings": [f.to_dict() for f in self.sorted_findings()],
        }
