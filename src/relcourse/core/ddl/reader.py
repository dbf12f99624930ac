"""Rule-based reader for CREATE TABLE / ALTER TABLE statements.

Reads the DDL subset used in course snippets into table definitions: columns,
nullability, defaults, primary keys, unique keys and foreign keys with their
referential actions. Statements outside that subset are kept as "other" and
otherwise ignored. Syntax validation lives in relcourse.core.lint.sql_syntax;
this reader never raises on malformed input.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from relcourse.core.schema.schema import SchemaModel
from relcourse.core.schema.types import (
    Attribute,
    AttributeKind,
    Entity,
    ForeignKey,
    ReferentialAction,
)
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<comment>--[^\n]*|/\*.*?(?:\*/|\Z))
    |(?P<string>'(?:[^']|'')*'?)
    |(?P<dollar>\$(?P<tag>[A-Za-z_]\w*)?\$.*?(?:\$(?P=tag)?\$|\Z))
    |(?P<qident>"(?:[^"]|"")*"|`[^`]*`|\[[A-Za-z_][^\]]*\])
    |(?P<number>\d+(?:\.\d+)?)
    |(?P<word>[A-Za-z_][\w$]*)
    |(?P<punct>[(),.;])
    |(?P<other>\S)
    """,
    re.VERBOSE | re.DOTALL,
)

# Words that end a column's type and start its constraints
_COLUMN_CONSTRAINT_WORDS = {
    "CONSTRAINT",
    "NOT",
    "NULL",
    "PRIMARY",
    "UNIQUE",
    "REFERENCES",
    "DEFAULT",
    "CHECK",
    "GENERATED",
    "AUTO_INCREMENT",
    "AUTOINCREMENT",
    "IDENTITY",
    "COLLATE",
    "COMMENT",
    "ON",
    "AS",
}

_TABLE_ELEMENT_SKIP = {"CHECK", "FULLTEXT", "SPATIAL", "EXCLUDE", "LIKE"}


@dataclass
class Token:
    kind: str  # word | qident | string | number | punct | other
    value: str  # identifier text (unquoted) or literal text
    line: int

    @property
    def upper(self) -> str:
        return self.value.upper() if self.kind == "word" else ""

    def is_punct(self, char: str) -> bool:
        return self.kind == "punct" and self.value == char


@dataclass
class Statement:
    """One SQL statement with the script line it starts on."""

    text: str
    line: int


@dataclass
class ColumnDef:
    name: str
    dtype: str = ""
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    default: Optional[str] = None
    generated: Optional[str] = None  # generated column expression


@dataclass
class ForeignKeyDef:
    columns: List[str]
    ref_table: str
    ref_columns: List[str] = field(default_factory=list)  # empty: parent PK
    on_delete: ReferentialAction = ReferentialAction.NO_ACTION
    on_update: ReferentialAction = ReferentialAction.NO_ACTION
    name: Optional[str] = None
    line: int = 0


@dataclass
class TableDef:
    name: str
    columns: List[ColumnDef] = field(default_factory=list)
    primary_key: List[str] = field(default_factory=list)
    unique_keys: List[List[str]] = field(default_factory=list)
    foreign_keys: List[ForeignKeyDef] = field(default_factory=list)
    line: int = 0
    opaque: bool = False  # CREATE TABLE ... AS SELECT: columns unknown

    def column(self, name: str) -> Optional[ColumnDef]:
        for col in self.columns:
            if col.name.lower() == name.lower():
                return col
        return None

    def has_column(self, name: str) -> bool:
        return self.opaque or self.column(name) is not None

    def key_columns(self) -> List[List[str]]:
        """Primary key (table-level or inline) followed by unique keys."""
        keys = []
        pk = self.primary_key or [c.name for c in self.columns if c.primary_key]
        if pk:
            keys.append(pk)
        keys.extend(self.unique_keys)
        keys.extend([c.name] for c in self.columns if c.unique)
        return keys

    def is_key(self, columns: List[str]) -> bool:
        wanted = {c.lower() for c in columns}
        return any({c.lower() for c in key} == wanted for key in self.key_columns())


@dataclass
class DDLStatement:
    """A statement classified as create_table, alter_table or other."""

    kind: str
    line: int
    table: Optional[str] = None
    definition: Optional[TableDef] = None
    foreign_keys: List[ForeignKeyDef] = field(default_factory=list)
    primary_key: List[str] = field(default_factory=list)
    unique_keys: List[List[str]] = field(default_factory=list)
    columns: List[ColumnDef] = field(default_factory=list)


@dataclass
class DDLScript:
    """All DDL statements of a script in order."""

    statements: List[DDLStatement] = field(default_factory=list)

    @property
    def tables(self) -> Dict[str, TableDef]:
        """Final table definitions with ALTER TABLE changes applied."""
        tables: Dict[str, TableDef] = {}
        for stmt in self.statements:
            if stmt.kind == "create_table" and stmt.definition is not None:
                tables[stmt.table] = copy.deepcopy(stmt.definition)
            elif stmt.kind == "alter_table" and stmt.table in tables:
                table = tables[stmt.table]
                table.columns.extend(
                    c for c in stmt.columns if table.column(c.name) is None
                )
                table.foreign_keys.extend(
                    fk for fk in stmt.foreign_keys if fk not in table.foreign_keys
                )
                if stmt.primary_key:
                    table.primary_key = list(stmt.primary_key)
                table.unique_keys.extend(
                    key for key in stmt.unique_keys if key not in table.unique_keys
                )
        return tables

    def foreign_keys(self) -> List[Tuple[str, ForeignKeyDef]]:
        """Every (child table, FK) pair in statement order."""
        found = []
        for stmt in self.statements:
            if stmt.kind == "create_table" and stmt.definition is not None:
                found.extend((stmt.table, fk) for fk in stmt.definition.foreign_keys)
            elif stmt.kind == "alter_table":
                found.extend((stmt.table, fk) for fk in stmt.foreign_keys)
        return found

    def to_schema_model(self, name: Optional[str] = None) -> SchemaModel:
        """Convert the table definitions into a SchemaModel."""
        schema = SchemaModel(name=name)
        tables = self.tables

        for table in tables.values():
            pk = table.primary_key or [c.name for c in table.columns if c.primary_key]
            pk_lower = {c.lower() for c in pk}
            attributes = []
            for col in table.columns:
                attributes.append(
                    Attribute(
                        name=col.name,
                        dtype=col.dtype,
                        kind=AttributeKind.DERIVED if col.generated else AttributeKind.SIMPLE,
                        nullable=col.nullable and col.name.lower() not in pk_lower,
                        default=col.default,
                        expression=col.generated,
                        stored=bool(col.generated),
                    )
                )
            alternate = [list(k) for k in table.unique_keys]
            alternate.extend([c.name] for c in table.columns if c.unique and [c.name] != pk)
            schema.add_entity(
                Entity.build(table.name, attributes, primary_key=pk, alternate_keys=alternate)
            )

        for child, fk in self.foreign_keys():
            parent_columns = list(fk.ref_columns)
            if not parent_columns and fk.ref_table in tables:
                parent = tables[fk.ref_table]
                parent_columns = parent.primary_key or [
                    c.name for c in parent.columns if c.primary_key
                ]
            schema.foreign_keys.append(
                ForeignKey(
                    child_table=child,
                    child_columns=fk.columns,
                    parent_table=fk.ref_table,
                    parent_columns=parent_columns,
                    on_delete=fk.on_delete,
                    on_update=fk.on_update,
                    name=fk.name,
                )
            )

        return schema


def split_statements(sql: str, start_line: int = 1) -> List[Statement]:
    """Split a script on semicolons outside strings, comments and dollar quotes.

    Args:
        sql: SQL script text
        start_line: Line number of the first line of `sql`

    Returns:
        Non-empty statements (without the terminating semicolon)
    """
    statements = []
    chunk_start = 0
    for match in _TOKEN_RE.finditer(sql):
        if match.lastgroup == "punct" and match.group() == ";":
            _append_statement(statements, sql, chunk_start, match.start(), start_line)
            chunk_start = match.end()
    _append_statement(statements, sql, chunk_start, len(sql), start_line)
    return statements


def _append_statement(
    statements: List[Statement], sql: str, start: int, end: int, start_line: int
) -> None:
    text = sql[start:end]
    first = _first_code_offset(text)
    if first is None:
        return
    line = start_line + sql.count("\n", 0, start + first)
    statements.append(Statement(text=text[first:].rstrip(), line=line))


def _first_code_offset(text: str) -> Optional[int]:
    for match in _TOKEN_RE.finditer(text):
        if match.lastgroup not in ("ws", "comment"):
            return match.start()
    return None


def tokenize(text: str, start_line: int = 1) -> List[Token]:
    """Tokenize SQL, dropping whitespace and comments."""
    tokens = []
    line = start_line
    for match in _TOKEN_RE.finditer(text):
        kind = match.lastgroup
        raw = match.group()
        if kind not in ("ws", "comment"):
            value = raw[1:-1].replace('""', '"') if kind == "qident" else raw
            tokens.append(Token(kind, value, line))
        line += raw.count("\n")
    return tokens


def read_ddl(sql: str, start_line: int = 1) -> DDLScript:
    """Read CREATE TABLE and ALTER TABLE statements from a SQL script.

    Args:
        sql: SQL script text
        start_line: Line number of the first line of `sql` (for reporting)

    Returns:
        DDLScript with statements in script order
    """
    script = DDLScript()
    for statement in split_statements(sql, start_line):
        tokens = tokenize(statement.text, statement.line)
        parser = _StatementParser(tokens)
        try:
            parsed = parser.parse(statement.line)
        except IndexError:
            logger.debug(f"Truncated statement at line {statement.line}")
            parsed = DDLStatement(kind="other", line=statement.line)
        script.statements.append(parsed)
    return script


def _identifier(token: Token) -> str:
    """Unquoted identifiers fold to lower case; quoted ones keep their case."""
    return token.value.lower() if token.kind == "word" else token.value


class _StatementParser:
    """Recursive-descent reader over one statement's tokens."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    # -- token helpers -------------------------------------------------

    def peek(self, offset: int = 0) -> Optional[Token]:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def next(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def at_word(self, *words: str) -> bool:
        token = self.peek()
        return token is not None and token.upper in words

    def accept_words(self, *words: str) -> bool:
        """Consume the exact word sequence if present."""
        for offset, word in enumerate(words):
            token = self.peek(offset)
            if token is None or token.upper != word:
                return False
        self.pos += len(words)
        return True

    def at_punct(self, char: str) -> bool:
        token = self.peek()
        return token is not None and token.is_punct(char)

    def done(self) -> bool:
        return self.pos >= len(self.tokens)

    def qualified_name(self) -> str:
        """Read schema.table and keep the last part."""
        name = _identifier(self.next())
        while self.at_punct("."):
            self.next()
            name = _identifier(self.next())
        return name

    def column_list(self) -> List[str]:
        """Read "(a, b DESC, c)" into column names."""
        columns = []
        if not self.at_punct("("):
            return columns
        self.next()
        depth = 1
        expect_name = True
        while not self.done() and depth:
            token = self.next()
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
            elif token.is_punct(",") and depth == 1:
                expect_name = True
            elif expect_name and depth == 1 and token.kind in ("word", "qident"):
                columns.append(_identifier(token))
                expect_name = False
        return columns

    def skip_parens(self) -> str:
        """Skip a parenthesized group and return its text."""
        parts = []
        depth = 0
        while not self.done():
            token = self.next()
            parts.append(token.value)
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
                if depth == 0:
                    break
        return _join(parts)

    # -- statements ----------------------------------------------------

    def parse(self, line: int) -> DDLStatement:
        if self.accept_words("CREATE"):
            self.accept_words("OR", "REPLACE")
            while self.at_word("TEMP", "TEMPORARY", "UNLOGGED", "GLOBAL", "LOCAL"):
                self.next()
            if self.accept_words("TABLE"):
                return self.create_table(line)
        elif self.accept_words("ALTER", "TABLE"):
            return self.alter_table(line)
        return DDLStatement(kind="other", line=line)

    def create_table(self, line: int) -> DDLStatement:
        self.accept_words("IF", "NOT", "EXISTS")
        name_token = self.peek()
        if name_token is None:
            return DDLStatement(kind="other", line=line)
        name = self.qualified_name()
        table = TableDef(name=name, line=name_token.line)

        if not self.at_punct("("):
            # CREATE TABLE t AS SELECT ... / CREATE TABLE t LIKE other
            table.opaque = True
            return DDLStatement("create_table", line, name, definition=table)

        self.next()
        for element in self._split_elements():
            _TableElementParser(element, table).parse()

        return DDLStatement("create_table", line, name, definition=table)

    def alter_table(self, line: int) -> DDLStatement:
        self.accept_words("IF", "EXISTS")
        self.accept_words("ONLY")
        name = self.qualified_name()
        stmt = DDLStatement("alter_table", line, name)
        scratch = TableDef(name=name)

        for action in self._split_elements(until_close=False):
            sub = _StatementParser(action)
            if not sub.accept_words("ADD"):
                continue
            is_column = sub.accept_words("COLUMN")
            sub.accept_words("IF", "NOT", "EXISTS")
            rest = action[sub.pos :]
            if not rest:
                continue
            element = _TableElementParser(rest, scratch)
            if is_column:
                element.column()
            else:
                element.parse()

        stmt.foreign_keys = scratch.foreign_keys
        stmt.primary_key = scratch.primary_key
        stmt.unique_keys = scratch.unique_keys
        stmt.columns = scratch.columns
        return stmt

    def _split_elements(self, until_close: bool = True) -> List[List[Token]]:
        """Split the remaining tokens on top-level commas."""
        elements: List[List[Token]] = [[]]
        depth = 0
        while not self.done():
            token = self.next()
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                if depth == 0 and until_close:
                    break
                depth -= 1
            elif token.is_punct(",") and depth == 0:
                elements.append([])
                continue
            elements[-1].append(token)
        return [e for e in elements if e]


class _TableElementParser(_StatementParser):
    """Parses one column definition or table constraint into a TableDef."""

    def __init__(self, tokens: List[Token], table: TableDef):
        super().__init__(tokens)
        self.table = table

    def parse(self) -> None:
        constraint_name = None
        if self.accept_words("CONSTRAINT"):
            constraint_name = _identifier(self.next())

        if self.accept_words("PRIMARY", "KEY"):
            self.table.primary_key = self.column_list()
        elif self.at_word("UNIQUE"):
            self.next()
            if self.at_word("KEY", "INDEX"):
                self.next()
            if not self.at_punct("("):
                self.next()  # MySQL index name
            columns = self.column_list()
            if columns:
                self.table.unique_keys.append(columns)
        elif self.at_word("FOREIGN"):
            line = self.next().line
            self.accept_words("KEY")
            if not self.at_punct("("):
                self.next()  # MySQL index name
            columns = self.column_list()
            if self.accept_words("REFERENCES"):
                fk = self.references(columns, line)
                fk.name = constraint_name
                self.table.foreign_keys.append(fk)
        elif constraint_name is None and self.at_word(*_TABLE_ELEMENT_SKIP):
            return
        elif constraint_name is None and self._at_index_definition():
            return
        elif constraint_name is None:
            self.column()

    def _at_index_definition(self) -> bool:
        """MySQL "KEY name (cols)" / "INDEX (cols)", not a column named key."""
        if not self.at_word("KEY", "INDEX"):
            return False
        following = self.peek(1)
        if following is None:
            return False
        if following.is_punct("("):
            return True
        after = self.peek(2)
        first_inner = self.peek(3)
        # "key VARCHAR(10)" has a length inside the parens, an index has columns
        return (
            after is not None
            and after.is_punct("(")
            and first_inner is not None
            and first_inner.kind in ("word", "qident")
        )

    def references(self, columns: List[str], line: int) -> ForeignKeyDef:
        """Parse "REFERENCES parent (cols) [ON DELETE ...] [ON UPDATE ...]"."""
        ref_table = self.qualified_name()
        ref_columns = self.column_list()
        fk = ForeignKeyDef(columns=columns, ref_table=ref_table, ref_columns=ref_columns, line=line)
        while not self.done():
            if self.accept_words("ON", "DELETE"):
                fk.on_delete = self.action()
            elif self.accept_words("ON", "UPDATE"):
                fk.on_update = self.action()
            elif self.at_word("MATCH"):
                self.next()
                self.next()
            elif self.at_word("DEFERRABLE", "INITIALLY", "DEFERRED", "IMMEDIATE", "NOT"):
                if self.at_word("NOT") and not (self.peek(1) and self.peek(1).upper == "DEFERRABLE"):
                    break
                self.next()
            else:
                break
        return fk

    def action(self) -> ReferentialAction:
        words = []
        if self.at_word("SET", "NO"):
            words.append(self.next().value)
        if not self.done():
            words.append(self.next().value)
        try:
            return ReferentialAction.parse(" ".join(words))
        except ValueError:
            logger.debug(f"Unknown referential action: {' '.join(words)}")
            return ReferentialAction.NO_ACTION

    def column(self) -> None:
        name_token = self.next()
        column = ColumnDef(name=_identifier(name_token))

        type_parts = []
        while not self.done() and not self.at_word(*_COLUMN_CONSTRAINT_WORDS):
            if self.at_punct("("):
                type_parts.append(self.skip_parens())
            else:
                type_parts.append(self.next().value)
        column.dtype = _join(type_parts)
        if column.dtype.upper() in ("SERIAL", "BIGSERIAL", "SMALLSERIAL"):
            column.nullable = False

        while not self.done():
            if self.accept_words("CONSTRAINT"):
                self.next()
            elif self.accept_words("NOT", "NULL"):
                column.nullable = False
            elif self.accept_words("NULL"):
                column.nullable = True
            elif self.accept_words("PRIMARY", "KEY"):
                column.primary_key = True
                column.nullable = False
                while self.at_word("ASC", "DESC", "AUTOINCREMENT"):
                    self.next()
            elif self.accept_words("UNIQUE"):
                column.unique = True
                self.accept_words("KEY")
            elif self.accept_words("REFERENCES"):
                fk = self.references([column.name], name_token.line)
                self.table.foreign_keys.append(fk)
            elif self.accept_words("DEFAULT"):
                column.default = self._expression()
            elif self.accept_words("CHECK"):
                self.skip_parens()
            elif self.accept_words("GENERATED"):
                column.generated = self._generated()
            elif self.accept_words("AS"):
                # MySQL / SQLite generated column shorthand
                if self.at_punct("("):
                    column.generated = self.skip_parens()[1:-1].strip()
            else:
                self.next()

        self.table.columns.append(column)

    def _expression(self) -> str:
        parts = []
        while not self.done() and not self.at_word(*(_COLUMN_CONSTRAINT_WORDS - {"NULL"})):
            if self.at_word("NULL") and parts:
                break
            if self.at_punct("("):
                parts.append(self.skip_parens())
            else:
                parts.append(self.next().value)
        return _join(parts)

    def _generated(self) -> Optional[str]:
        """GENERATED ALWAYS AS (expr) STORED / GENERATED ... AS IDENTITY."""
        while not self.done() and not self.at_word("AS"):
            self.next()
        if not self.accept_words("AS"):
            return None
        if self.at_punct("("):
            expression = self.skip_parens()[1:-1].strip()
            self.accept_words("STORED")
            self.accept_words("VIRTUAL")
            return expression
        if self.accept_words("IDENTITY"):
            if self.at_punct("("):
                self.skip_parens()
        return None


def _join(parts: List[str]) -> str:
    text = " ".join(parts)
    text = re.sub(r"\s*([(),.:\[\]])\s*", r"\1", text)
    text = text.replace(",", ", ")
    return text.strip()
