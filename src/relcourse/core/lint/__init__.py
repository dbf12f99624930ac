"""Documentation checks for Markdown course chapters."""

from relcourse.core.lint.base import LintCheck, LintContext
from relcourse.core.lint.findings import Finding, LintReport, Severity
from relcourse.core.lint.foreign_keys import ForeignKeyCheck
from relcourse.core.lint.linter import CHECK_REGISTRY, CourseLinter
from relcourse.core.lint.links import LinkCheck
from relcourse.core.lint.qa_pairs import QAPairCheck
from relcourse.core.lint.sql_syntax import SQLSyntaxCheck, has_elision, parse_error

__all__ = [
    "CHECK_REGISTRY",
    "CourseLinter",
    "Finding",
    "ForeignKeyCheck",
    "LintCheck",
    "LintContext",
    "LintReport",
    "LinkCheck",
    "QAPairCheck",
    "SQLSyntaxCheck",
    "Severity",
    "has_elision",
    "parse_error",
]
