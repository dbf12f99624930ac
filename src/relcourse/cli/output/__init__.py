"""CLI output formatting."""

from relcourse.cli.output.formatters import OutputFormatter

__all__ = ["OutputFormatter"]
