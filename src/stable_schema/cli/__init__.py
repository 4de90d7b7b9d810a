"""stable-schema command-line interface."""

from __future__ import annotations

from stable_schema.cli.main import cli, main

__all__ = ["cli", "main"]
