"""Foreign key reference check for DDL snippets.

Every ``REFERENCES`` / ``FOREIGN KEY`` in a SQL block must point at a table
that is either defined earlier (in the same snippet, or in the same
document when ``scope`` is ``document``) or explicitly marked as elided.

A parent table is marked elided with a directive before the fence::

    <!-- relcourse: elided customers products -->

or with a comment inside the block::

    -- elided: customers, products
    -- assumes: customers(customer_id)
"""

from __future__ import annotations

import copy
import re
from typing import Dict, List, Optional, Set

from relcourse.core.ddl.reader import DDLStatement, ForeignKeyDef, TableDef, read_ddl
from relcourse.core.docs.markdown import CodeBlock, MarkdownDocument
from relcourse.core.lint.base import (
    DEFAULT_SQL_LANGUAGES,
    LintCheck,
    LintContext,
    sql_blocks,
)
from relcourse.core.lint.findings import Finding, Severity
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

ANY_TABLE = "*"

_ELIDED_COMMENT = re.compile(
    r"--\s*(?:elided|assumes?|defined\s+(?:above|earlier|elsewhere))\b\s*:?(?P<names>[^\n]*)",
    re.IGNORECASE,
)
_NAME = re.compile(r'"([^"]+)"|`([^`]+)`|\[([^\]]+)\]|([A-Za-z_][\w$.]*)')
_PARENS = re.compile(r"\([^)]*\)")
_FILLER = {"table", "tables", "and"}


def elided_tables(block: CodeBlock) -> Set[str]:
    """Table names a block declares as defined elsewhere (lower-cased).

    A marker without names (``-- defined above``) covers every table.
    """
    names = {a.lower() for a in block.directive_args("elided")}
    if block.has_flag("elided") and not names:
        names.add(ANY_TABLE)

    for match in _ELIDED_COMMENT.finditer(block.content):
        text = _PARENS.sub(" ", match.group("names"))
        found = set()
        for name in _NAME.finditer(text):
            value = next(g for g in name.groups() if g)
            if value.lower() not in _FILLER:
                found.add(value.lower())
        names.update(found or {ANY_TABLE})
    return names


class ForeignKeyCheck(LintCheck):
    """Every referenced table must be defined earlier or marked elided."""

    name = "foreign_keys"

    def __init__(self, config: Optional[Dict] = None):
        super().__init__(config)
        self.scope = self.config.get("scope", "snippet")
        if self.scope not in ("snippet", "document"):
            raise ValueError(f"Invalid foreign key scope: {self.scope}")
        self.require_key_target = self.config.get("require_key_target", True)
        self.dialect = self.config.get("dialect") or "postgres"
        self.languages = self.config.get("languages") or DEFAULT_SQL_LANGUAGES

    def check(self, document: MarkdownDocument, context: LintContext) -> List[Finding]:
        findings: List[Finding] = []
        document_tables: Dict[str, TableDef] = {}

        for block, _dialect in sql_blocks(document, self.languages, self.dialect):
            if block.has_flag("skip") or block.has_flag("invalid"):
                continue

            script = read_ddl(block.content, start_line=block.content_line)
            elided = elided_tables(block)
            defined = dict(document_tables) if self.scope == "document" else {}

            for stmt in script.statements:
                table = self._apply(stmt, defined)
                if table is None:
                    continue
                fks = table.foreign_keys if stmt.kind == "create_table" else stmt.foreign_keys
                for fk in fks:
                    findings.extend(
                        self._check_reference(document, stmt, table, fk, defined, elided)
                    )

            if self.scope == "document":
                document_tables.update(defined)

        return findings

    def _apply(self, stmt: DDLStatement, defined: Dict[str, TableDef]) -> Optional[TableDef]:
        """Record a statement's table and return the child table it acts on."""
        if stmt.kind == "create_table" and stmt.definition is not None:
            defined[stmt.table.lower()] = copy.deepcopy(stmt.definition)
            return defined[stmt.table.lower()]
        if stmt.kind == "alter_table" and stmt.table:
            table = defined.get(stmt.table.lower())
            if table is None:
                # Altering a table from elsewhere; only the references are checked
                return TableDef(name=stmt.table, opaque=True)
            table.columns.extend(c for c in stmt.columns if table.column(c.name) is None)
            if stmt.primary_key:
                table.primary_key = list(stmt.primary_key)
            table.unique_keys.extend(stmt.unique_keys)
            return table
        return None

    def _check_reference(
        self,
        document: MarkdownDocument,
        stmt: DDLStatement,
        child: TableDef,
        fk: ForeignKeyDef,
        defined: Dict[str, TableDef],
        elided: Set[str],
    ) -> List[Finding]:
        findings = []
        line = fk.line or stmt.line
        label = f"{child.name}({', '.join(fk.columns)})"

        missing_child = [c for c in fk.columns if not child.has_column(c)]
        if missing_child:
            findings.append(
                self.finding(
                    document,
                    line,
                    f"Foreign key {label} uses column(s) not in {child.name}: "
                    f"{', '.join(missing_child)}",
                )
            )

        parent = defined.get(fk.ref_table.lower())
        if parent is None:
            if ANY_TABLE in elided or fk.ref_table.lower() in elided:
                logger.debug(f"{label} references elided table {fk.ref_table}")
                return findings
            findings.append(
                self.finding(
                    document,
                    line,
                    f"Foreign key {label} references table '{fk.ref_table}' which is not "
                    f"defined earlier in this {self.scope}; define it or mark it elided",
                )
            )
            return findings

        if parent.opaque:
            return findings

        parent_pk = parent.primary_key or [c.name for c in parent.columns if c.primary_key]
        ref_columns = fk.ref_columns or parent_pk
        if not ref_columns:
            findings.append(
                self.finding(
                    document,
                    line,
                    f"Foreign key {label} references {parent.name} without a column list, "
                    f"but {parent.name} has no primary key",
                )
            )
            return findings

        missing_parent = [c for c in ref_columns if not parent.has_column(c)]
        if missing_parent:
            findings.append(
                self.finding(
                    document,
                    line,
                    f"Foreign key {label} references missing column(s) in {parent.name}: "
                    f"{', '.join(missing_parent)}",
                )
            )
        elif len(ref_columns) != len(fk.columns):
            findings.append(
                self.finding(
                    document,
                    line,
                    f"Foreign key {label} has {len(fk.columns)} column(s) but references "
                    f"{len(ref_columns)} in {parent.name}",
                )
            )
        elif self.require_key_target and not parent.is_key(ref_columns):
            findings.append(
                self.finding(
                    document,
                    line,
                    f"Foreign key {label} references {parent.name}({', '.join(ref_columns)}), "
                    f"which is not a primary or unique key",
                    severity=Severity.WARNING,
                )
            )
        return findings
