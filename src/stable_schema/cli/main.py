"""Main entry point for the stable-schema CLI.

Commands:
    stable-schema check: Validate declarations and report diagnostics
    stable-schema generate: Emit generated declarations as JSON

Example:
    $ stable-schema --help
    $ stable-schema check ledger.yaml
    $ stable-schema --log-level INFO generate ledger.yaml -o target/ledger.json
"""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

import click

from stable_schema.cli.check import check_command
from stable_schema.cli.generate import generate_command
from stable_schema.telemetry.logging import configure_logging


def _get_version() -> str:
    """Package version, or 'unknown' if not installed."""
    try:
        return get_version("stable-schema")
    except PackageNotFoundError:
        return "unknown"


@click.group(
    name="stable-schema",
    help="stable-schema - versioned schema compiler and linter.",
    epilog="Use 'stable-schema <command> --help' for command-specific help.",
    context_settings={
        "help_option_names": ["-h", "--help"],
    },
)
@click.version_option(
    version=_get_version(),
    prog_name="stable-schema",
    message="%(prog)s %(version)s",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="ERROR",
    help="Minimum level of structured logs written to stderr.",
)
@click.option(
    "--log-json/--no-log-json",
    default=False,
    help="Render logs as JSON lines.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_json: bool) -> None:
    """Root command group for the stable-schema CLI."""
    ctx.ensure_object(dict)
    configure_logging(log_level=log_level, json_output=log_json)


cli.add_command(check_command)
cli.add_command(generate_command)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the stable-schema CLI.

    Args:
        argv: Command-line arguments (uses sys.argv if None).
    """
    try:
        cli(args=argv, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
