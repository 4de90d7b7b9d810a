"""Telemetry helpers: OpenTelemetry spans and structlog trace correlation."""

from __future__ import annotations

from stable_schema.telemetry.logging import add_trace_context, configure_logging
from stable_schema.telemetry.tracing import (
    create_span,
    get_tracer,
    set_tracer,
    traced,
)

__all__ = [
    "add_trace_context",
    "configure_logging",
    "create_span",
    "get_tracer",
    "set_tracer",
    "traced",
]
