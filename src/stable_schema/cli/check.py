"""``stable-schema check`` command.

Builds and validates every family of a unit and reports diagnostics. Nothing
is generated.

Example:
    $ stable-schema check ledger.yaml
    $ stable-schema check ledger.yaml --config stable-schema.yaml --format json
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from stable_schema.cli.utils import ExitCode, error_exit, load_inputs, report_diagnostics, success


@click.command(
    name="check",
    help="Validate versioned schema declarations.",
    epilog="""
Exits 0 when every family builds and no reference violates the
versioning discipline, 5 otherwise.

Examples:
    $ stable-schema check ledger.yaml
    $ stable-schema check ledger.yaml --format json
""",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.argument(
    "unit",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a compiler configuration YAML file.",
    metavar="PATH",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format.",
)
def check_command(unit: Path, config_path: Path | None, output_format: str) -> None:
    """Validate a declaration file without generating anything."""
    from stable_schema.compilation.stages import analyze_unit

    compilation_unit, config = load_inputs(unit, config_path)
    result = analyze_unit(compilation_unit, config)

    if output_format.lower() == "json":
        click.echo(result.model_dump_json(indent=2))
        if not result.passed:
            sys.exit(ExitCode.VALIDATION_ERROR)
        return

    if not result.passed:
        report_diagnostics(result.diagnostics)
        error_exit(
            f"{len(result.diagnostics)} diagnostic(s) in unit '{result.unit_name}'",
            exit_code=ExitCode.VALIDATION_ERROR,
        )

    success(f"{result.unit_name}: {len(result.families)} families OK")
    for family in result.families:
        success(f"  {family.name}: V1..V{family.latest.number} ({family.variant.value})")


__all__ = ["check_command"]
