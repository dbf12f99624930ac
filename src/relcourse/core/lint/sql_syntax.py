"""SQL syntax check for fenced SQL blocks.

Blocks are parsed with sqlglot, which is more permissive than the database
servers it models. Some statements a server rejects still parse, for example
a trailing comma in a column list (``CREATE TABLE t (id INT PRIMARY KEY,);``),
so a clean result means "parses as the dialect", not "the server accepts it".
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

import sqlglot
from sqlglot.errors import ParseError, TokenError

from relcourse.core.docs.markdown import MarkdownDocument
from relcourse.core.lint.base import (
    DEFAULT_SQL_LANGUAGES,
    LintCheck,
    LintContext,
    sql_blocks,
)
from relcourse.core.lint.findings import Finding
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

# Flags that exempt a block from parsing
EXEMPT_FLAGS = ("skip", "invalid", "fragment")

_NON_CODE = re.compile(r"--[^\n]*|/\*.*?\*/|'(?:[^']|'')*'", re.DOTALL)
_ELISION = re.compile(r"\.\.\.|…")


def has_elision(sql: str) -> bool:
    """Check for ``...`` placeholders outside comments and string literals."""
    return bool(_ELISION.search(_NON_CODE.sub(" ", sql)))


def parse_error(sql: str, dialect: Optional[str] = None) -> Optional[Tuple[int, str]]:
    """Parse SQL and report the first syntax error.

    Args:
        sql: SQL text (one or more statements)
        dialect: sqlglot dialect name

    Returns:
        (line within the text, message), or None when the SQL parses
    """
    try:
        sqlglot.parse(sql, read=dialect or None)
    except ParseError as e:
        details = e.errors[0] if e.errors else {}
        line = details.get("line") or 1
        message = details.get("description") or str(e)
        return line, message
    except TokenError as e:
        return 1, str(e)
    return None


class SQLSyntaxCheck(LintCheck):
    """Every SQL block must parse unless it is marked or elided."""

    name = "sql_syntax"

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(config)
        self.dialect = self.config.get("dialect") or "postgres"
        self.languages = self.config.get("languages") or DEFAULT_SQL_LANGUAGES
        self.skip_elided = self.config.get("skip_elided", True)

        for dialect in {self.dialect, *self.languages.values()} - {""}:
            # Raises ValueError for names sqlglot does not know
            sqlglot.Dialect.get_or_raise(dialect)

    def check(self, document: MarkdownDocument, context: LintContext) -> List[Finding]:
        findings = []
        for block, dialect in sql_blocks(document, self.languages, self.dialect):
            if any(block.has_flag(flag) for flag in EXEMPT_FLAGS):
                logger.debug(f"Skipping marked block at {document.display_path}:{block.start_line}")
                continue
            if self.skip_elided and has_elision(block.content):
                logger.debug(f"Skipping elided block at {document.display_path}:{block.start_line}")
                continue
            if not block.content.strip():
                continue

            error = parse_error(block.content, dialect)
            if error is None:
                continue
            line, message = error
            findings.append(
                self.finding(
                    document,
                    block.content_line + line - 1,
                    f"SQL does not parse as {dialect}: {message}",
                )
            )
        return findings
