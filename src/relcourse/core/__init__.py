"""Core modules for relcourse."""

# Re-export all public APIs
from relcourse.core.ddl import DDLScript, TableDef, read_ddl
from relcourse.core.docs import MarkdownDocument, github_slug
from relcourse.core.lint import CourseLinter, Finding, LintReport, Severity
from relcourse.core.schema import (
    Attribute,
    Entity,
    ForeignKey,
    ReferentialAction,
    Relationship,
    SchemaModel,
    check_integrity,
    course_reference_schema,
    plan_delete,
    validate_schema,
)
from relcourse.core.schema.normalization import (
    FunctionalDependency,
    candidate_keys,
    normal_form,
)

__all__ = [
    # DDL
    "DDLScript",
    "TableDef",
    "read_ddl",
    # Documents
    "MarkdownDocument",
    "github_slug",
    # Lint
    "CourseLinter",
    "Finding",
    "LintReport",
    "Severity",
    # Schema
    "Attribute",
    "Entity",
    "ForeignKey",
    "ReferentialAction",
    "Relationship",
    "SchemaModel",
    "check_integrity",
    "course_reference_schema",
    "plan_delete",
    "validate_schema",
    # Normalization
    "FunctionalDependency",
    "candidate_keys",
    "normal_form",
]
