"""Key and referential integrity checks on sample rows."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from relcourse.core.schema.schema import SchemaModel
from relcourse.core.schema.types import ForeignKey, ReferentialAction
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)


class ReferentialIntegrityError(Exception):
    """Raised when a change would leave dangling or blocked references."""


@dataclass
class Violation:
    """One integrity violation found in sample rows."""

    kind: str  # primary_key_null | primary_key_duplicate | unique_duplicate | fk_orphan | fk_null
    table: str
    columns: List[str]
    message: str
    rows: List[Any] = field(default_factory=list)  # offending row labels

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "table": self.table,
            "columns": self.columns,
            "message": self.message,
            "rows": [_plain(r) for r in self.rows],
        }


@dataclass
class IntegrityReport:
    """Result of checking sample rows against a schema."""

    violations: List[Violation] = field(default_factory=list)
    coverage: Dict[str, float] = field(default_factory=dict)  # FK label -> coverage
    tables_checked: int = 0

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def by_kind(self, kind: str) -> List[Violation]:
        return [v for v in self.violations if v.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "tables_checked": self.tables_checked,
            "coverage": self.coverage,
            "violations": [v.to_dict() for v in self.violations],
        }


def check_integrity(
    schema: SchemaModel, tables: Dict[str, pd.DataFrame]
) -> IntegrityReport:
    """Check primary keys, alternate keys and foreign keys on sample rows.

    Args:
        schema: Schema the rows should satisfy
        tables: Dict mapping entity name -> DataFrame

    Returns:
        IntegrityReport
    """
    report = IntegrityReport()

    for name, entity in schema.entities.items():
        if name not in tables:
            logger.warning(f"No sample rows for entity '{name}'")
            continue
        df = tables[name]
        report.tables_checked += 1

        if entity.primary_key:
            _check_primary_key(name, entity.primary_key, df, report)
        for key in entity.alternate_keys:
            _check_unique(name, key, df, report)

    for fk in schema.foreign_keys:
        if fk.child_table not in tables or fk.parent_table not in tables:
            logger.warning(f"Skipping {fk.describe()}: sample rows missing")
            continue
        _check_foreign_key(schema, fk, tables, report)

    logger.info(
        f"Checked {report.tables_checked} tables: {len(report.violations)} violations"
    )
    return report


def _check_primary_key(
    table: str, columns: List[str], df: pd.DataFrame, report: IntegrityReport
) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        report.violations.append(
            Violation(
                "primary_key_null",
                table,
                columns,
                f"Primary key column(s) {', '.join(missing)} missing from {table} rows",
            )
        )
        return

    nulls = df[df[columns].isna().any(axis=1)]
    if not nulls.empty:
        report.violations.append(
            Violation(
                "primary_key_null",
                table,
                columns,
                f"{len(nulls)} row(s) in {table} have a NULL primary key "
                f"({', '.join(columns)})",
                rows=list(nulls.index),
            )
        )

    present = df[df[columns].notna().all(axis=1)]
    dupes = present[present.duplicated(subset=columns, keep=False)]
    if not dupes.empty:
        report.violations.append(
            Violation(
                "primary_key_duplicate",
                table,
                columns,
                f"{len(dupes)} row(s) in {table} share a primary key value "
                f"({', '.join(columns)})",
                rows=list(dupes.index),
            )
        )


def _check_unique(
    table: str, columns: List[str], df: pd.DataFrame, report: IntegrityReport
) -> None:
    if any(c not in df.columns for c in columns):
        return
    # NULLs never collide under UNIQUE
    present = df[df[columns].notna().all(axis=1)]
    dupes = present[present.duplicated(subset=columns, keep=False)]
    if not dupes.empty:
        report.violations.append(
            Violation(
                "unique_duplicate",
                table,
                columns,
                f"{len(dupes)} row(s) in {table} duplicate unique key "
                f"({', '.join(columns)})",
                rows=list(dupes.index),
            )
        )


def _check_foreign_key(
    schema: SchemaModel,
    fk: ForeignKey,
    tables: Dict[str, pd.DataFrame],
    report: IntegrityReport,
) -> None:
    child_df = tables[fk.child_table]
    parent_df = tables[fk.parent_table]
    label = fk.describe()

    if any(c not in child_df.columns for c in fk.child_columns) or any(
        c not in parent_df.columns for c in fk.parent_columns
    ):
        logger.warning(f"Skipping {label}: columns missing from sample rows")
        return

    child_keys = child_df[fk.child_columns]
    null_mask = child_keys.isna().any(axis=1)

    entity = schema.entities.get(fk.child_table)
    not_nullable = []
    if entity is not None:
        not_nullable = [
            c
            for c in fk.child_columns
            if c in entity.attributes and not entity.attributes[c].nullable
        ]
    if not_nullable:
        bad_nulls = child_df[child_df[not_nullable].isna().any(axis=1)]
        if not bad_nulls.empty:
            report.violations.append(
                Violation(
                    "fk_null",
                    fk.child_table,
                    fk.child_columns,
                    f"{len(bad_nulls)} row(s) in {fk.child_table} have NULL in "
                    f"NOT NULL foreign key {label}",
                    rows=list(bad_nulls.index),
                )
            )

    parent_keys = set(_row_tuples(parent_df, fk.parent_columns))
    present = child_df[~null_mask]
    child_tuples = _row_tuples(present, fk.child_columns)
    orphan_mask = [t not in parent_keys for t in child_tuples]
    orphans = present[orphan_mask] if len(present) else present

    distinct = set(child_tuples)
    coverage = (
        len(distinct & parent_keys) / len(distinct) if distinct else 1.0
    )
    fk.coverage = coverage
    report.coverage[label] = coverage

    if not orphans.empty:
        report.violations.append(
            Violation(
                "fk_orphan",
                fk.child_table,
                fk.child_columns,
                f"{len(orphans)} row(s) in {fk.child_table} reference missing "
                f"{fk.parent_table} rows ({label})",
                rows=list(orphans.index),
            )
        )


def _row_tuples(df: pd.DataFrame, columns: Sequence[str]) -> List[Tuple]:
    rows = df[list(columns)].itertuples(index=False, name=None)
    return [tuple(_plain(v) for v in row) for row in rows]


def _plain(value: Any) -> Any:
    """Convert numpy scalars to plain Python values for comparison and JSON."""
    if hasattr(value, "item"):
        try:
            return value.item()
        except (ValueError, TypeError):
            return value
    return value


@dataclass
class DeletePlan:
    """Effect of deleting parent rows under each FK's ON DELETE action."""

    deletes: Dict[str, List[Any]] = field(default_factory=dict)  # table -> row labels
    updates: Dict[str, Dict[str, List[Any]]] = field(default_factory=dict)  # table -> column -> labels
    set_values: Dict[Tuple[str, str], Any] = field(default_factory=dict)  # (table, column) -> value
    blocked_by: List[str] = field(default_factory=list)

    @property
    def is_blocked(self) -> bool:
        return bool(self.blocked_by)

    def summary(self) -> Dict[str, Any]:
        return {
            "deletes": {t: len(rows) for t, rows in self.deletes.items()},
            "updates": {
                t: {c: len(rows) for c, rows in cols.items()}
                for t, cols in self.updates.items()
            },
            "blocked_by": self.blocked_by,
        }

    def apply(self, tables: Dict[str, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
        """Return new tables with the plan applied.

        Raises:
            ReferentialIntegrityError: If a RESTRICT/NO ACTION reference blocks
                the delete
        """
        if self.is_blocked:
            raise ReferentialIntegrityError(self.blocked_by[0])

        result = {name: df.copy() for name, df in tables.items()}
        for table, columns in self.updates.items():
            df = result[table]
            deleted = set(self.deletes.get(table, []))
            for column, labels in columns.items():
                labels = [label for label in labels if label not in deleted]
                df[column] = df[column].astype(object)
                df.loc[labels, column] = self.set_values.get((table, column))
        for table, labels in self.deletes.items():
            result[table] = result[table].drop(index=labels)
        return result


def plan_delete(
    schema: SchemaModel,
    tables: Dict[str, pd.DataFrame],
    table: str,
    key_values: Sequence[Any],
) -> DeletePlan:
    """Plan deleting rows from `table` identified by primary key values.

    Cascades follow ON DELETE CASCADE recursively; SET NULL / SET DEFAULT
    record column updates; RESTRICT and NO ACTION record blocking
    references such as "Cannot delete customers with existing orders".

    Args:
        schema: Schema holding entities and foreign keys
        tables: Dict mapping entity name -> DataFrame
        table: Table to delete from
        key_values: Primary key values; tuples for composite keys

    Returns:
        DeletePlan
    """
    entity = schema.get_entity(table)
    if not entity.primary_key:
        raise ValueError(f"Entity '{table}' has no primary key")
    if table not in tables:
        raise KeyError(f"No rows loaded for table '{table}'")

    wanted = {
        tuple(_plain(v) for v in (k if isinstance(k, (tuple, list)) else (k,)))
        for k in key_values
    }
    df = tables[table]
    keys = _row_tuples(df, entity.primary_key)
    labels = [label for label, key in zip(df.index, keys) if key in wanted]
    if len(labels) < len(wanted):
        found = {key for key in keys if key in wanted}
        missing = sorted(str(k[0] if len(k) == 1 else k) for k in wanted - found)
        raise ValueError(f"No {table} rows with key(s): {', '.join(missing)}")

    plan = DeletePlan()
    queue = deque([(table, labels)])
    seen = {table: set(labels)}
    plan.deletes[table] = list(labels)

    while queue:
        parent_table, parent_labels = queue.popleft()
        parent_df = tables[parent_table]
        for fk in schema.get_foreign_keys_for_table(parent_table, "incoming"):
            if fk.child_table not in tables:
                continue
            removed = set(_row_tuples(parent_df.loc[parent_labels], fk.parent_columns))
            child_df = tables[fk.child_table]
            child_keys = _row_tuples(child_df, fk.child_columns)
            affected = [
                label
                for label, key in zip(child_df.index, child_keys)
                if key in removed
                and label not in seen.get(fk.child_table, set())
            ]
            if not affected:
                continue

            action = fk.on_delete
            if action.blocks_delete:
                plan.blocked_by.append(
                    f"Cannot delete {parent_table} with existing {fk.child_table} "
                    f"({len(affected)} row(s) via {fk.describe()}, ON DELETE {action.value})"
                )
            elif action == ReferentialAction.CASCADE:
                seen.setdefault(fk.child_table, set()).update(affected)
                plan.deletes.setdefault(fk.child_table, []).extend(affected)
                queue.append((fk.child_table, affected))
            else:
                child_entity = schema.entities.get(fk.child_table)
                for column in fk.child_columns:
                    value: Optional[Any] = None
                    if action == ReferentialAction.SET_DEFAULT and child_entity:
                        attr = child_entity.attributes.get(column)
                        value = attr.default if attr is not None else None
                    updates = plan.updates.setdefault(fk.child_table, {})
                    updates.setdefault(column, []).extend(affected)
                    plan.set_values[(fk.child_table, column)] = value

    logger.debug(f"Delete plan for {table}: {plan.summary()}")
    return plan
