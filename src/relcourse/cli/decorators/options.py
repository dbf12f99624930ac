"""Common CLI option decorators."""

from __future__ import annotations

import click


def with_schema_file(f):
    """Add a SCHEMA_FILE argument (JSON or YAML schema model).

    Example:
        @click.command()
        @with_schema_file
        def my_command(schema_file):
            pass
    """
    return click.argument(
        "schema_file",
        type=click.Path(exists=True, dir_okay=False),
    )(f)


def with_output_file(f):
    """Add --output option to command.

    Example:
        @click.command()
        @with_output_file
        def my_command(output):
            pass
    """
    return click.option(
        "--output",
        "-o",
        type=click.Path(dir_okay=False),
        help="Output file path (.json, .yml or .yaml)",
    )(f)


def with_format(f):
    """Add --format option (text or json)."""
    return click.option(
        "--format",
        "output_format",
        type=click.Choice(["text", "json"], case_sensitive=False),
        default="text",
        show_default=True,
        help="Output format",
    )(f)
