"""DDL reading: CREATE TABLE / ALTER TABLE into table definitions."""

from relcourse.core.ddl.reader import (
    ColumnDef,
    DDLScript,
    DDLStatement,
    ForeignKeyDef,
    Statement,
    TableDef,
    read_ddl,
    split_statements,
)

__all__ = [
    "ColumnDef",
    "DDLScript",
    "DDLStatement",
    "ForeignKeyDef",
    "Statement",
    "TableDef",
    "read_ddl",
    "split_statements",
]
