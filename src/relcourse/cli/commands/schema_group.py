"""Schema commands - extract, validate, reflect, reference, normalize."""

from __future__ import annotations

import click

from relcourse.cli.decorators import (
    handle_errors,
    with_format,
    with_output_file,
    with_schema_file,
)
from relcourse.cli.handlers import SchemaHandler
from relcourse.cli.output import OutputFormatter
from relcourse.connectors import DBConnector
from relcourse.core.schema import SchemaModel, course_reference_schema
from relcourse.utils.config import get_config
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)
out = OutputFormatter()


@click.group(name="schema")
def schema_group():
    """Relational schema models: build, validate and normalize."""


def _report_schema(schema: SchemaModel) -> None:
    out.stats(
        {
            "Entities": len(schema.entities),
            "Foreign keys": len(schema.foreign_keys),
            "Relationships": len(schema.relationships),
        }
    )


def _save(schema: SchemaModel, output) -> None:
    if output:
        schema.save(output)
        out.success(f"Schema saved to {output}")
    else:
        out.json(schema.to_dict())


@schema_group.command(name="extract")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@with_output_file
@handle_errors
def extract_cmd(source, output):
    """Build a schema model from CREATE TABLE statements.

    SOURCE: a .sql script or a Markdown chapter with SQL blocks

    \b
    Examples:
        relcourse schema extract chapters/04-integrity.md -o schema.json
        relcourse schema extract course.sql -o schema.yml
    """
    handler = SchemaHandler(get_config())
    schema = handler.extract(source)
    if output:
        out.section(f"🔧 Extracted schema from {source}")
        _report_schema(schema)
    _save(schema, output)


@schema_group.command(name="validate")
@with_schema_file
@with_format
@handle_errors
@click.pass_context
def validate_cmd(ctx, schema_file, output_format):
    """Validate a schema model (keys, foreign keys, relationships).

    Exits with status 1 when errors are found.
    """
    handler = SchemaHandler(get_config())
    schema = SchemaModel.load(schema_file)
    result = handler.validate(schema)

    if output_format == "json":
        out.json(result)
    else:
        out.section(f"📋 {schema_file}")
        _report_schema(schema)
        if result["errors"]:
            out.section(f"❌ {len(result['errors'])} error(s):")
            out.list_items(result["errors"])
        if result["warnings"]:
            out.section(f"⚠️  {len(result['warnings'])} warning(s):")
            out.list_items(result["warnings"])
        if not result["errors"] and not result["warnings"]:
            out.success("Schema is valid")

    if result["errors"]:
        ctx.exit(1)


@schema_group.command(name="reflect")
@click.argument("connection_string")
@click.option("--db-schema", help="Database schema to reflect (default: connection default)")
@with_output_file
@handle_errors
def reflect_cmd(connection_string, db_schema, output):
    """Reflect a schema model from a live database.

    CONNECTION_STRING: SQLAlchemy URL, e.g. sqlite:///course.db
    """
    with DBConnector(connection_string, schema=db_schema) as connector:
        schema = connector.reflect_schema()
    if output:
        out.section("🔧 Reflected schema")
        _report_schema(schema)
    _save(schema, output)


@schema_group.command(name="reference")
@with_output_file
@handle_errors
def reference_cmd(output):
    """Write the course's reference schema (customers, orders, products...)."""
    _save(course_reference_schema(), output)


@schema_group.command(name="normalize")
@click.option(
    "--attributes",
    "-a",
    required=True,
    help='Relation attributes, comma separated (e.g. "order_id,product_id,qty")',
)
@click.option(
    "--fd",
    "-f",
    "fds",
    multiple=True,
    help='Functional dependency, e.g. "order_id -> customer_id" (repeatable)',
)
@click.option(
    "--mvd",
    "-m",
    "mvds",
    multiple=True,
    help='Multivalued dependency, e.g. "course ->> teacher" (repeatable)',
)
@click.option(
    "--multivalued",
    multiple=True,
    help="Attribute holding a repeating group (breaks 1NF; repeatable)",
)
@with_format
@handle_errors
def normalize_cmd(attributes, fds, mvds, multivalued, output_format):
    """Classify a relation and propose BCNF / 3NF decompositions.

    \b
    Examples:
        relcourse schema normalize -a "student,course,teacher" \\
            -f "student,course -> teacher" -f "teacher -> course"
    """
    handler = SchemaHandler(get_config())
    names = [a.strip() for a in attributes.split(",") if a.strip()]
    result = handler.normalize(names, fds, mvds, multivalued)

    if output_format == "json":
        out.json(result)
        return

    out.section(f"📐 R({', '.join(names)})")
    out.stats(
        {
            "Normal form": result["normal_form"],
            "Candidate keys": "; ".join(
                "{" + ", ".join(key) + "}" for key in result["candidate_keys"]
            ),
            "Minimal cover": "; ".join(result["minimal_cover"]) or "(none)",
        }
    )
    for form, problems in result["violations"].items():
        out.section(f"⚠️  Not in {form}:")
        out.list_items(problems)
    out.section("BCNF decomposition:")
    out.list_items(["(" + ", ".join(r) + ")" for r in result["bcnf_decomposition"]])
    out.section("3NF synthesis:")
    out.list_items(["(" + ", ".join(r) + ")" for r in result["3nf_synthesis"]])
