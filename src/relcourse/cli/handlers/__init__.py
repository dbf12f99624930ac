"""CLI command handlers containing business logic."""

from relcourse.cli.handlers.data_handler import DataHandler
from relcourse.cli.handlers.schema_handler import SchemaHandler

__all__ = [
    "DataHandler",
    "SchemaHandler",
]
