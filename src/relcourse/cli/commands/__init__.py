"""CLI command modules."""

from . import data_group, lint, schema_group

__all__ = ["data_group", "lint", "schema_group"]
