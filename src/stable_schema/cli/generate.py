"""``stable-schema generate`` command.

Compiles a unit and writes the generated declarations (Latest aliases,
serialize/deserialize_opt signatures, decode order) as JSON. A unit with any
diagnostic writes nothing.

Example:
    $ stable-schema generate ledger.yaml --output-file target/ledger.generated.json
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from stable_schema.cli.utils import (
    ExitCode,
    error_exit,
    info,
    load_inputs,
    report_diagnostics,
    success,
)


@click.command(
    name="generate",
    help="Generate Latest aliases and dispatcher declarations.",
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
    "--output-file",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write JSON here instead of stdout.",
    metavar="PATH",
)
def generate_command(unit: Path, config_path: Path | None, output_file: Path | None) -> None:
    """Compile a declaration file and emit its generated declarations."""
    from stable_schema.compilation.errors import SchemaCompilationError
    from stable_schema.compilation.stages import compile_unit

    compilation_unit, config = load_inputs(unit, config_path)
    try:
        result = compile_unit(compilation_unit, config)
    except SchemaCompilationError as e:
        report_diagnostics(e.diagnostics)
        error_exit(
            f"{len(e.diagnostics)} diagnostic(s); nothing generated",
            exit_code=ExitCode.VALIDATION_ERROR,
        )

    payload = {
        "unit": result.unit_name,
        "generated": [g.model_dump(mode="json", exclude_none=True) for g in result.generated],
    }
    rendered = json.dumps(payload, indent=2)

    if output_file is None:
        click.echo(rendered)
        return

    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(rendered + "\n", encoding="utf-8")
    except PermissionError:
        error_exit(
            "Cannot write output file", exit_code=ExitCode.PERMISSION_ERROR, path=str(output_file)
        )
    except OSError as e:
        error_exit(f"Cannot write output file: {e}", path=str(output_file))

    info(f"Generated {len(result.generated)} families")
    success(f"Wrote {output_file}")


__all__ = ["generate_command"]
