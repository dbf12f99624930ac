"""Relational data dictionary: schema model, validation and integrity."""

from relcourse.core.schema.integrity import (
    DeletePlan,
    IntegrityReport,
    ReferentialIntegrityError,
    check_integrity,
    plan_delete,
)
from relcourse.core.schema.reference import course_reference_schema
from relcourse.core.schema.schema import SchemaModel
from relcourse.core.schema.types import (
    Attribute,
    AttributeKind,
    Cardinality,
    Entity,
    ForeignKey,
    Key,
    KeyKind,
    Participation,
    ReferentialAction,
    Relationship,
)
from relcourse.core.schema.validation import validate_schema

__all__ = [
    "Attribute",
    "AttributeKind",
    "Cardinality",
    "DeletePlan",
    "Entity",
    "ForeignKey",
    "IntegrityReport",
    "Key",
    "KeyKind",
    "Participation",
    "ReferentialAction",
    "ReferentialIntegrityError",
    "Relationship",
    "SchemaModel",
    "check_integrity",
    "course_reference_schema",
    "plan_delete",
    "validate_schema",
]
