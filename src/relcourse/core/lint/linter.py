"""Course linter: discovers Markdown files and runs the enabled checks."""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Type

from relcourse.core.docs.markdown import MarkdownDocument
from relcourse.core.lint.base import LintCheck, LintContext, sql_blocks
from relcourse.core.lint.findings import Finding, LintReport, Severity
from relcourse.core.lint.foreign_keys import ForeignKeyCheck
from relcourse.core.lint.links import LinkCheck
from relcourse.core.lint.qa_pairs import QAPairCheck
from relcourse.core.lint.sql_syntax import SQLSyntaxCheck
from relcourse.utils.config import Config, get_config
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

CHECK_REGISTRY: Dict[str, Type[LintCheck]] = {
    SQLSyntaxCheck.name: SQLSyntaxCheck,
    ForeignKeyCheck.name: ForeignKeyCheck,
    QAPairCheck.name: QAPairCheck,
    LinkCheck.name: LinkCheck,
}

# Check name on findings for files that cannot be loaded
READ_CHECK = "read"


class CourseLinter:
    """Lint Markdown course chapters."""

    def __init__(self, config: Optional[Config] = None, checks: Optional[List[str]] = None):
        """Initialize linter.

        Args:
            config: Configuration (global config if None)
            checks: Check names to run (``lint.checks`` if None)
        """
        self.config = config or get_config()
        names = checks or self.config.get("lint.checks", list(CHECK_REGISTRY))

        unknown = [n for n in names if n not in CHECK_REGISTRY]
        if unknown:
            raise ValueError(
                f"Unknown check(s): {', '.join(unknown)}. "
                f"Available: {', '.join(CHECK_REGISTRY)}"
            )

        self.directive_prefix = self.config.get("lint.directive_prefix", "relcourse")
        self.checks = [CHECK_REGISTRY[n](self._check_config(n)) for n in names]
        logger.debug(f"Enabled checks: {', '.join(names)}")

    def _check_config(self, name: str) -> Dict:
        sql_config = dict(self.config.get("lint.sql", {}) or {})
        if name == SQLSyntaxCheck.name:
            return sql_config
        if name == ForeignKeyCheck.name:
            return {**sql_config, **(self.config.get("lint.foreign_keys", {}) or {})}
        if name == QAPairCheck.name:
            return dict(self.config.get("lint.qa", {}) or {})
        return dict(self.config.get(f"lint.{name}", {}) or {})

    def discover(self, paths: Iterable[str | Path]) -> List[Path]:
        """Expand files and directories into Markdown files.

        Args:
            paths: Files or directories

        Returns:
            Sorted, de-duplicated file list
        """
        include = self.config.get("docs.include", ["**/*.md"])
        exclude = self.config.get("docs.exclude", [])
        found = set()

        for path in map(Path, paths):
            if not path.exists():
                raise FileNotFoundError(f"Path not found: {path}")
            if path.is_file():
                found.add(path)
                continue
            for pattern in include:
                for candidate in path.glob(pattern):
                    relative = "/" + candidate.relative_to(path).as_posix()
                    if candidate.is_file() and not any(fnmatch(relative, p) for p in exclude):
                        found.add(candidate)

        return sorted(found)

    def lint_document(self, document: MarkdownDocument, context: LintContext) -> List[Finding]:
        """Run the enabled checks on one parsed document."""
        disabled = document.disabled_checks()
        findings = []
        for check in self.checks:
            if check.name in disabled:
                logger.debug(f"{check.name} disabled in {document.display_path}")
                continue
            findings.extend(check.check(document, context))
        return findings

    def lint_paths(self, paths: Iterable[str | Path]) -> LintReport:
        """Lint every Markdown file under the given paths.

        Args:
            paths: Files or directories

        Returns:
            LintReport
        """
        paths = list(paths)
        files = self.discover(paths)
        roots = [Path(p) for p in paths if Path(p).is_dir()]
        context = LintContext(
            root=roots[0] if roots else None, directive_prefix=self.directive_prefix
        )

        logger.info(f"Linting {len(files)} file(s)")
        report = LintReport()
        for path in files:
            try:
                document = context.get_document(path)
            except (UnicodeDecodeError, OSError) as e:
                logger.warning(f"Cannot read {path}: {e}")
                report.findings.append(
                    Finding(
                        check=READ_CHECK,
                        severity=Severity.ERROR,
                        message=f"File cannot be read as UTF-8 Markdown: {e}",
                        path=str(path),
                    )
                )
                continue
            report.extend(self.lint_document(document, context))
            report.files_checked += 1
            report.blocks_checked += len(sql_blocks(document, self._sql_languages()))

        logger.info(
            f"Found {len(report.findings)} finding(s) in {report.files_checked} file(s)"
        )
        return report

    def lint_text(self, text: str, path: Optional[str | Path] = None) -> LintReport:
        """Lint Markdown text that is not (necessarily) on disk."""
        document = MarkdownDocument.parse(text, path=path, directive_prefix=self.directive_prefix)
        context = LintContext(
            root=document.path.parent if document.path is not None else None,
            directive_prefix=self.directive_prefix,
        )
        context.add_document(document)
        report = LintReport(files_checked=1)
        report.extend(self.lint_document(document, context))
        report.blocks_checked = len(sql_blocks(document, self._sql_languages()))
        return report

    def _sql_languages(self) -> Optional[Dict[str, str]]:
        return self.config.get("lint.sql.languages")
