"""Base class and shared context for documentation checks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from relcourse.core.docs.markdown import (
    DEFAULT_DIRECTIVE_PREFIX,
    CodeBlock,
    MarkdownDocument,
)
from relcourse.core.lint.findings import Finding, Severity
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SQL_LANGUAGES = {
    "sql": "",
    "postgresql": "postgres",
    "postgres": "postgres",
    "psql": "postgres",
    "mysql": "mysql",
    "sqlite": "sqlite",
    "tsql": "tsql",
    "plsql": "oracle",
}


class LintContext:
    """State shared by the checks of one lint run."""

    def __init__(
        self,
        root: Optional[Path] = None,
        directive_prefix: str = DEFAULT_DIRECTIVE_PREFIX,
    ):
        self.root = Path(root) if root is not None else Path.cwd()
        self.directive_prefix = directive_prefix
        self._documents: Dict[Path, MarkdownDocument] = {}

    def add_document(self, document: MarkdownDocument) -> None:
        if document.path is not None:
            self._documents[document.path.resolve()] = document

    def get_document(self, path: Path) -> MarkdownDocument:
        """Parse a document once per run (used for cross-file anchors)."""
        key = Path(path).resolve()
        if key not in self._documents:
            self._documents[key] = MarkdownDocument.from_file(
                key, directive_prefix=self.directive_prefix
            )
        return self._documents[key]


class LintCheck(ABC):
    """Base class for documentation checks."""

    name: str = ""

    def __init__(self, config: Optional[Dict] = None):
        """Initialize check.

        Args:
            config: Check-specific configuration dict
        """
        self.config = config or {}

    @abstractmethod
    def check(self, document: MarkdownDocument, context: LintContext) -> List[Finding]:
        """Run the check on one document.

        Args:
            document: Parsed Markdown document
            context: Shared lint context

        Returns:
            List of findings
        """

    def finding(
        self,
        document: MarkdownDocument,
        line: Optional[int],
        message: str,
        severity: Severity = Severity.ERROR,
    ) -> Finding:
        return Finding(
            check=self.name,
            severity=severity,
            message=message,
            path=document.display_path,
            line=line,
        )


def sql_blocks(
    document: MarkdownDocument,
    languages: Optional[Dict[str, str]] = None,
    default_dialect: str = "postgres",
) -> List[Tuple[CodeBlock, str]]:
    """SQL code blocks of a document with the parser dialect for each.

    Args:
        document: Parsed Markdown document
        languages: Fence language -> dialect ("" means the default dialect)
        default_dialect: Dialect for plain ``sql`` fences

    Returns:
        List of (block, dialect) pairs in document order
    """
    languages = languages if languages is not None else DEFAULT_SQL_LANGUAGES
    return [
        (block, languages[block.language] or default_dialect)
        for block in document.code_blocks
        if block.language in languages
    ]
