"""CLI decorators for common options and error handling."""

from relcourse.cli.decorators.error_handling import handle_errors
from relcourse.cli.decorators.options import (
    with_format,
    with_output_file,
    with_schema_file,
)

__all__ = [
    "handle_errors",
    "with_format",
    "with_output_file",
    "with_schema_file",
]
