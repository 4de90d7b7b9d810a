"""CLI utility functions and error handling.

- Exit code constants
- Output helpers for consistent stderr/stdout usage
- Loading of the unit and config files with LOAD errors mapped to exit codes

Example:
    from stable_schema.cli.utils import error_exit, ExitCode

    if not result.passed:
        error_exit("Schema compilation failed", exit_code=ExitCode.VALIDATION_ERROR)
"""

from __future__ import annotations

import sys
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from typing import NoReturn

    from stable_schema.schemas.config import CompilerConfig
    from stable_schema.schemas.declarations import CompilationUnit
    from stable_schema.schemas.diagnostics import Diagnostic


class ExitCode(IntEnum):
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    """Command completed successfully."""

    GENERAL_ERROR = 1
    """General error (catch-all for failures)."""

    USAGE_ERROR = 2
    """Invalid usage (bad arguments, missing required options)."""

    FILE_NOT_FOUND = 3
    """Required file or directory not found."""

    PERMISSION_ERROR = 4
    """Permission denied writing output."""

    VALIDATION_ERROR = 5
    """Declarations failed to load or violate the versioning discipline."""


def error(message: str, **context: str | int | bool | None) -> None:
    """Print an error message to stderr.

    Example:
        error("File not found", path="/path/to/file")
        # Output: Error: File not found (path=/path/to/file)
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)
        full_message = f"Error: {message} ({context_str})"
    else:
        full_message = f"Error: {message}"

    click.echo(full_message, err=True)


def error_exit(
    message: str,
    exit_code: ExitCode = ExitCode.GENERAL_ERROR,
    **context: str | int | bool | None,
) -> NoReturn:
    """Print an error message to stderr and exit with a code.

    Raises:
        SystemExit: Always exits with the specified code.
    """
    error(message, **context)
    sys.exit(exit_code)


def success(message: str) -> None:
    """Print a success message to stdout."""
    click.echo(message)


def info(message: str) -> None:
    """Print an informational message to stderr."""
    click.echo(message, err=True)


def report_diagnostics(diagnostics: tuple[Diagnostic, ...] | list[Diagnostic]) -> None:
    """Print every diagnostic to stderr, one block each."""
    for diagnostic in diagnostics:
        click.echo(diagnostic.format(), err=True)


def load_inputs(
    unit_path: Path,
    config_path: Path | None,
) -> tuple[CompilationUnit, CompilerConfig | None]:
    """Load the unit and optional config, exiting on LOAD errors.

    E001 exits with FILE_NOT_FOUND; E002/E003 with VALIDATION_ERROR.
    """
    from stable_schema.compilation.errors import CompilationException
    from stable_schema.compilation.loader import load_config, load_unit

    try:
        unit = load_unit(unit_path)
        config = load_config(config_path) if config_path is not None else None
    except CompilationException as e:
        exit_code = ExitCode.FILE_NOT_FOUND if e.code == "E001" else ExitCode.VALIDATION_ERROR
        error_exit(e.error.format(), exit_code=exit_code)
    return unit, config


__all__ = [
    "ExitCode",
    "error",
    "error_exit",
    "info",
    "load_inputs",
    "report_diagnostics",
    "success",
]
