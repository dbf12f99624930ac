"""Lint command for Markdown course chapters."""

from __future__ import annotations

import click

from relcourse.cli.decorators import handle_errors, with_format
from relcourse.cli.output import OutputFormatter
from relcourse.core.lint import CHECK_REGISTRY, CourseLinter
from relcourse.utils.config import get_config
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)
out = OutputFormatter()


@click.command(name="lint")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option(
    "--check",
    "checks",
    multiple=True,
    type=click.Choice(sorted(CHECK_REGISTRY)),
    help="Run only this check (repeatable; default: lint.checks from config)",
)
@click.option("--dialect", help="SQL dialect for plain ``sql`` blocks (e.g. postgres, mysql)")
@with_format
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the report to a file")
@click.option(
    "--fail-on",
    type=click.Choice(["error", "warning", "info", "never"], case_sensitive=False),
    help="Exit with status 1 when findings at this severity exist (default: lint.fail_on)",
)
@handle_errors
@click.pass_context
def lint_cmd(ctx, paths, checks, dialect, output_format, output, fail_on):
    """Lint Markdown chapters: SQL syntax, foreign keys, Q/A pairs and links.

    PATHS: Markdown files or directories

    \b
    Examples:
        relcourse lint chapters/
        relcourse lint chapters/03-keys.md --check sql_syntax --dialect mysql
        relcourse lint chapters/ --format json -o lint-report.json
    """
    config = get_config()
    if dialect:
        config.set("lint.sql.dialect", dialect)
    fail_on = (fail_on or config.get("lint.fail_on", "error")).lower()

    linter = CourseLinter(config, checks=list(checks) or None)
    report = linter.lint_paths(paths)
    rendered = out.lint_report(report, output_format.lower())

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(rendered + "\n")
        out.success(f"Report written to {output}")
    else:
        click.echo(rendered)

    if report.fails(fail_on):
        ctx.exit(1)
