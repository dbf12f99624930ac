"""Sample-data commands - integrity check and delete planning."""

from __future__ import annotations

import click

from relcourse.cli.decorators import handle_errors, with_format, with_schema_file
from relcourse.cli.handlers import DataHandler
from relcourse.cli.output import OutputFormatter
from relcourse.utils.config import get_config
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)
out = OutputFormatter()


@click.group(name="data")
def data_group():
    """Check sample rows (CSV) against a schema model."""


@data_group.command(name="check")
@with_schema_file
@click.argument("csv_dir", type=click.Path(exists=True, file_okay=False))
@with_format
@handle_errors
@click.pass_context
def check_cmd(ctx, schema_file, csv_dir, output_format):
    """Check keys and foreign keys on sample rows.

    CSV_DIR: directory with one <table>.csv per entity

    Exits with status 1 when violations are found.
    """
    handler = DataHandler(get_config())
    schema, tables = handler.load(schema_file, csv_dir)
    report, low_coverage = handler.check(schema, tables)

    if output_format == "json":
        data = report.to_dict()
        data["low_coverage"] = low_coverage
        out.json(data)
    else:
        out.section(f"🔍 Checked {report.tables_checked} table(s)")
        for label, value in report.coverage.items():
            out.stats({label: f"{value:.0%} coverage"})
        if report.violations:
            out.section(f"❌ {len(report.violations)} violation(s):")
            out.list_items([v.message for v in report.violations])
        for message in low_coverage:
            out.warning(message)
        if report.is_valid:
            out.success("Sample rows satisfy the schema")

    if not report.is_valid:
        ctx.exit(1)


@data_group.command(name="plan-delete")
@with_schema_file
@click.argument("csv_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("table")
@click.argument("keys", nargs=-1, required=True)
@with_format
@handle_errors
@click.pass_context
def plan_delete_cmd(ctx, schema_file, csv_dir, table, keys, output_format):
    """Show what deleting rows would do under each ON DELETE action.

    KEYS: primary key values; composite keys comma separated ("1001,7")

    \b
    Examples:
        relcourse data plan-delete schema.json sample/ customers 1
        relcourse data plan-delete schema.json sample/ order_items 1001,7

    Exits with status 1 when a RESTRICT / NO ACTION reference blocks the delete.
    """
    handler = DataHandler(get_config())
    schema, tables = handler.load(schema_file, csv_dir)
    plan = handler.plan_delete(schema, tables, table, keys)
    summary = plan.summary()

    if output_format == "json":
        out.json(summary)
    else:
        out.section(f"🗑️  Delete from {table}: {', '.join(keys)}")
        for name, count in summary["deletes"].items():
            out.stats({f"delete {name}": f"{count} row(s)"})
        for name, columns in summary["updates"].items():
            for column, count in columns.items():
                value = plan.set_values.get((name, column))
                out.stats({f"set {name}.{column} = {value}": f"{count} row(s)"})
        if plan.is_blocked:
            out.section("❌ Blocked:")
            out.list_items(plan.blocked_by)
        else:
            out.success("Delete can proceed")

    if plan.is_blocked:
        ctx.exit(1)
