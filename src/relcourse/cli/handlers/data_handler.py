"""Business logic for sample-data commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd

from relcourse.connectors import CSVLoader
from relcourse.core.schema import (
    DeletePlan,
    IntegrityReport,
    SchemaModel,
    check_integrity,
    plan_delete,
)
from relcourse.utils.config import Config
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)


class DataHandler:
    """Handler for checking sample rows against a schema model."""

    def __init__(self, config: Config):
        self.config = config

    def load(
        self, schema_file: str | Path, csv_dir: str | Path
    ) -> Tuple[SchemaModel, Dict[str, pd.DataFrame]]:
        """Load a schema model and the CSV files for its entities.

        Args:
            schema_file: JSON or YAML schema model
            csv_dir: Directory with one CSV file per table

        Returns:
            (schema, tables)
        """
        schema = SchemaModel.load(schema_file)
        loader = CSVLoader(csv_dir)
        available = set(loader.get_table_names())
        tables = {
            name: loader.load_single_table(name)
            for name in schema.entities
            if name in available
        }
        logger.info(f"Loaded sample rows for {len(tables)} of {len(schema.entities)} tables")
        return schema, tables

    def check(
        self, schema: SchemaModel, tables: Dict[str, pd.DataFrame]
    ) -> Tuple[IntegrityReport, List[str]]:
        """Check integrity and list FKs whose coverage is below the threshold.

        Returns:
            (report, low-coverage messages)
        """
        report = check_integrity(schema, tables)
        threshold = float(self.config.get("schema.integrity.min_coverage", 1.0))
        low = [
            f"{label}: coverage {value:.0%} below {threshold:.0%}"
            for label, value in report.coverage.items()
            if value < threshold
        ]
        return report, low

    def plan_delete(
        self,
        schema: SchemaModel,
        tables: Dict[str, pd.DataFrame],
        table: str,
        keys: Sequence[str],
    ) -> DeletePlan:
        """Plan a delete from command-line key strings.

        Composite keys are written comma-separated ("1001,7").
        """
        entity = schema.get_entity(table)
        if table not in tables:
            raise KeyError(f"No rows loaded for table '{table}'")
        df = tables[table]

        key_values = []
        for text in keys:
            parts = [p.strip() for p in text.split(",")]
            if len(parts) != len(entity.primary_key):
                raise ValueError(
                    f"Key {text!r} has {len(parts)} part(s); primary key of {table} is "
                    f"({', '.join(entity.primary_key)})"
                )
            values = tuple(
                coerce_value(part, df[column]) if column in df.columns else part
                for part, column in zip(parts, entity.primary_key)
            )
            key_values.append(values)

        return plan_delete(schema, tables, table, key_values)


def coerce_value(text: str, series: pd.Series) -> Any:
    """Convert a command-line string to the dtype of a column."""
    if pd.api.types.is_bool_dtype(series):
        return text.lower() in ("1", "true", "yes")
    if pd.api.types.is_integer_dtype(series):
        return int(text)
    if pd.api.types.is_float_dtype(series):
        return float(text)
    return text
