"""CLI entry point for relcourse."""

from __future__ import annotations

import click

from relcourse import __version__
from relcourse.cli.commands import data_group, lint, schema_group
from relcourse.utils.config import load_config
from relcourse.utils.logging import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to relcourse.yml (default: $RELCOURSE_CONFIG or ./relcourse.yml)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.pass_context
def cli(ctx, config, log_level):
    """relcourse - lint relational database course chapters and schemas.

    \b
    Examples:
        # Lint every chapter
        relcourse lint chapters/

        # Extract the schema defined in a chapter and validate it
        relcourse schema extract chapters/04-integrity.md -o schema.json
        relcourse schema validate schema.json

        # Normal form of a relation
        relcourse schema normalize -a "a,b,c" -f "a -> b" -f "b -> c"

        # Check sample rows and plan a cascading delete
        relcourse data check schema.json sample/
        relcourse data plan-delete schema.json sample/ customers 1
    """
    ctx.ensure_object(dict)

    setup_logging(level=log_level)

    if config:
        ctx.obj["config"] = load_config(config)


cli.add_command(lint.lint_cmd)
cli.add_command(schema_group.schema_group)
cli.add_command(data_group.data_group)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
