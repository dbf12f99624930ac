"""Error handling decorators for CLI commands."""

from __future__ import annotations

import signal
from functools import wraps

import click

from relcourse.core.schema.integrity import ReferentialIntegrityError
from relcourse.utils.logging import get_logger

logger = get_logger(__name__)

# Restore default SIGPIPE handling so piping into head exits quietly
if hasattr(signal, "SIGPIPE"):
    signal.signal(signal.SIGPIPE, signal.SIG_DFL)


def handle_errors(f):
    """Decorator to handle common errors in CLI commands.

    Catches exceptions and displays user-friendly error messages,
    then aborts the command gracefully.

    Example:
        @click.command()
        @handle_errors
        def my_command():
            ...
    """

    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (click.Abort, click.exceptions.Exit, click.ClickException):
            raise
        except FileNotFoundError as e:
            click.echo(f"❌ File not found: {e}", err=True)
            raise click.Abort()
        except PermissionError as e:
            click.echo(f"❌ Permission denied: {e}", err=True)
            raise click.Abort()
        except ReferentialIntegrityError as e:
            click.echo(f"❌ Referential integrity: {e}", err=True)
            raise click.Abort()
        except ValueError as e:
            click.echo(f"❌ Invalid value: {e}", err=True)
            logger.debug("ValueError details", exc_info=True)
            raise click.Abort()
        except KeyError as e:
            click.echo(f"❌ Missing key: {e}", err=True)
            logger.debug("KeyError details", exc_info=True)
            raise click.Abort()
        except Exception as e:
            click.echo(f"❌ Unexpected error: {e}", err=True)
            logger.exception("Unexpected error in command")
            raise click.Abort()

    return wrapper
