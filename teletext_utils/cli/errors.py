"""
CLI Error Handling
==================

Exit codes and the exception handler shared by the ttxpage commands.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn, Optional

import click

from teletext_utils.errors import TeletextLoadError, UnknownFormatError


class ExitCode(IntEnum):
    """Exit codes of the command line tools."""
    SUCCESS = 0
    FORMAT_ERROR = 1     # File could not be decoded
    INVALID_ARGS = 2     # Invalid arguments, unknown format or missing files
    INTERNAL_ERROR = 3   # Unexpected internal error


def handle_cli_exception(
    error: Exception,
    verbose: bool = False,
    error_type: Optional[str] = None
) -> NoReturn:
    """
    Report an exception raised by a command and exit with its exit code.

    Args:
        error: The exception that was raised
        verbose: If True, print full traceback for internal errors
        error_type: Optional prefix for the error message (e.g. "Load")

    Raises:
        SystemExit: Always
    """
    prefix = f"{error_type} error: " if error_type else "Error: "

    if isinstance(error, TeletextLoadError):
        click.echo(f"{prefix}{error}", err=True)
        sys.exit(ExitCode.FORMAT_ERROR)

    elif isinstance(error, click.BadParameter):
        click.echo(f"Error: {error.format_message()}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, UnknownFormatError):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, (FileNotFoundError, PermissionError)):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exc()
        sys.exit(ExitCode.INTERNAL_ERROR)
