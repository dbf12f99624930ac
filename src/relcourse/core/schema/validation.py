"""Structural validation of a SchemaModel against relational invariants."""

from __future__ import annotations

from typing import Dict, List

from relcourse.core.schema.schema import SchemaModel
from relcourse.core.schema.types import (
    AttributeKind,
    Cardinality,
    ForeignKey,
    Participation,
    ReferentialAction,
    Relationship,
)
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)


def validate_schema(schema: SchemaModel) -> Dict[str, List[str]]:
    """Validate schema and return errors/warnings.

    Args:
        schema: SchemaModel to validate

    Returns:
        Dict with 'errors' and 'warnings' lists
    """
    errors: List[str] = []
    warnings: List[str] = []

    _check_entities(schema, errors, warnings)
    for fk in schema.foreign_keys:
        _check_foreign_key(schema, fk, errors)
    for rel in schema.relationships:
        _check_relationship(schema, rel, errors, warnings)

    # Check for entities with no relationships
    if len(schema.entities) > 1:
        related = set()
        for fk in schema.foreign_keys:
            related.add(fk.child_table)
            related.add(fk.parent_table)
        isolated = sorted(set(schema.entities) - related)
        if isolated:
            warnings.append(
                f"Found {len(isolated)} isolated entities (no FK relationships): "
                f"{', '.join(isolated)}"
            )

    logger.debug(
        f"Validated {schema!r}: {len(errors)} errors, {len(warnings)} warnings"
    )
    return {"errors": errors, "warnings": warnings}


def _check_entities(
    schema: SchemaModel, errors: List[str], warnings: List[str]
) -> None:
    for name, entity in schema.entities.items():
        if not entity.primary_key:
            errors.append(f"Entity '{name}' has no primary key")

        for key in entity.keys():
            if len(set(key.columns)) != len(key.columns):
                errors.append(
                    f"Entity '{name}' {key.kind.value} key repeats a column: "
                    f"({', '.join(key.columns)})"
                )
            for col in key.columns:
                if col not in entity.attributes:
                    errors.append(
                        f"Entity '{name}' {key.kind.value} key column '{col}' "
                        f"is not an attribute"
                    )

        for col in entity.primary_key:
            attr = entity.attributes.get(col)
            if attr is not None and attr.nullable:
                errors.append(
                    f"Primary key column {name}.{col} must be NOT NULL"
                )

        for attr in entity.attributes.values():
            if attr.kind == AttributeKind.MULTI_VALUED:
                errors.append(
                    f"Multi-valued attribute {name}.{attr.name} is stored inline; "
                    f"move it to its own table keyed by {name}"
                )
            elif attr.kind == AttributeKind.COMPOSITE and not attr.components:
                warnings.append(
                    f"Composite attribute {name}.{attr.name} lists no components"
                )
            elif attr.kind == AttributeKind.DERIVED and not attr.expression:
                warnings.append(
                    f"Derived attribute {name}.{attr.name} has no expression"
                )


def _check_foreign_key(schema: SchemaModel, fk: ForeignKey, errors: List[str]) -> None:
    label = fk.describe()

    if len(fk.child_columns) != len(fk.parent_columns):
        errors.append(
            f"FK {label} has {len(fk.child_columns)} child columns but "
            f"{len(fk.parent_columns)} parent columns"
        )

    child = schema.entities.get(fk.child_table)
    parent = schema.entities.get(fk.parent_table)

    if child is None:
        errors.append(f"FK references non-existent child table: {fk.child_table}")
    else:
        for col in fk.child_columns:
            if col not in child.attributes:
                errors.append(
                    f"FK references non-existent child column: {fk.child_table}.{col}"
                )

    if parent is None:
        errors.append(f"FK references non-existent parent table: {fk.parent_table}")
    else:
        missing = [col for col in fk.parent_columns if col not in parent.attributes]
        for col in missing:
            errors.append(
                f"FK references non-existent parent column: {fk.parent_table}.{col}"
            )
        if not missing and not parent.is_key(fk.parent_columns):
            errors.append(
                f"FK {label} must reference a primary or alternate key of "
                f"{fk.parent_table}"
            )

    if child is not None and ReferentialAction.SET_NULL in (fk.on_delete, fk.on_update):
        for col in fk.child_columns:
            attr = child.attributes.get(col)
            if attr is not None and not attr.nullable:
                errors.append(
                    f"FK {label} uses SET NULL but {fk.child_table}.{col} is NOT NULL"
                )


def _check_relationship(
    schema: SchemaModel,
    rel: Relationship,
    errors: List[str],
    warnings: List[str],
) -> None:
    unknown = [e for e in (rel.left, rel.right) if e not in schema.entities]
    for entity_name in unknown:
        errors.append(
            f"Relationship '{rel.name}' references unknown entity '{entity_name}'"
        )
    if unknown:
        return

    if rel.cardinality == Cardinality.MANY_TO_MANY:
        _check_many_to_many(schema, rel, errors)
        return

    # 1:1 and 1:N are realized by an FK from right (child) to left (parent)
    fks = [
        fk
        for fk in schema.foreign_keys
        if fk.child_table == rel.right and fk.parent_table == rel.left
    ]
    if not fks:
        warnings.append(
            f"Relationship '{rel.name}' ({rel.left} {rel.cardinality.value} "
            f"{rel.right}) has no foreign key from {rel.right} to {rel.left}"
        )
        return

    child = schema.entities[rel.right]
    for fk in fks:
        if rel.cardinality == Cardinality.ONE_TO_ONE and not child.is_unique(
            fk.child_columns
        ):
            warnings.append(
                f"Relationship '{rel.name}' is 1:1 but {rel.right}"
                f"({', '.join(fk.child_columns)}) is not unique"
            )
        if rel.right_participation == Participation.MANDATORY:
            nullable = [
                col
                for col in fk.child_columns
                if col in child.attributes and child.attributes[col].nullable
            ]
            if nullable:
                warnings.append(
                    f"Relationship '{rel.name}' is mandatory for {rel.right} but "
                    f"FK column(s) {', '.join(nullable)} allow NULL"
                )


def _check_many_to_many(
    schema: SchemaModel, rel: Relationship, errors: List[str]
) -> None:
    if not rel.via:
        errors.append(
            f"Many-to-many relationship '{rel.name}' needs an association entity"
        )
        return
    if rel.via not in schema.entities:
        errors.append(
            f"Relationship '{rel.name}' uses unknown association entity '{rel.via}'"
        )
        return

    outgoing = schema.get_foreign_keys_for_table(rel.via, "outgoing")
    to_left = [fk for fk in outgoing if fk.parent_table == rel.left]
    to_right = [fk for fk in outgoing if fk.parent_table == rel.right]
    if not to_left or not to_right:
        errors.append(
            f"Association entity '{rel.via}' must hold foreign keys to both "
            f"{rel.left} and {rel.right}"
        )
        return

    assoc = schema.entities[rel.via]
    paired = any(
        assoc.is_unique(left.child_columns + right.child_columns)
        and not set(left.child_columns) & set(right.child_columns)
        for left in to_left
        for right in to_right
        if left is not right
    )
    if not paired:
        errors.append(
            f"Association entity '{rel.via}' must make its two foreign keys "
            f"unique together (composite key)"
        )
