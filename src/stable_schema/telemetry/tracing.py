"""OpenTelemetry tracing utilities for the compiler pipeline.

Provides the @traced decorator and the create_span() context manager. Each
compilation stage runs inside a span (``schema.compile``, ``schema.build``,
``schema.validate``, ``schema.synthesize``) so slow units can be located in
a trace.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar, overload

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode, Tracer

if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span

P = ParamSpec("P")
R = TypeVar("R")

_TRACER_NAME = "stable_schema"

# Resolved on first use; set_tracer() swaps it in tests
_tracer: Tracer | None = None


def get_tracer() -> Tracer:
    """Get the tracer used by stable_schema spans.

    Resolved from the global TracerProvider on first use. Until a provider is
    installed this is OpenTelemetry's proxy tracer, which starts delegating
    once one is.
    """
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(_TRACER_NAME)
    return _tracer


def set_tracer(tracer: Tracer | None) -> None:
    """Set the module-level tracer (for testing).

    Args:
        tracer: Tracer instance to use, or None to go back to the global provider.
    """
    global _tracer
    _tracer = tracer


def _record_error(span: Span, error: Exception) -> None:
    message = str(error)[:500]
    span.set_status(Status(StatusCode.ERROR, message))
    span.set_attribute("exception.type", type(error).__name__)
    span.set_attribute("exception.message", message)


@overload
def traced(func: Callable[P, R]) -> Callable[P, R]: ...


@overload
def traced(
    *,
    name: str | None = None,
    attributes: dict[str, str] | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]: ...


def traced(
    func: Callable[P, R] | None = None,
    *,
    name: str | None = None,
    attributes: dict[str, str] | None = None,
) -> Callable[P, R] | Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator to trace function execution with an OpenTelemetry span.

    Can be used with or without arguments:
        @traced
        def my_function(): ...

        @traced(name="schema.bind", attributes={"key": "value"})
        def my_function(): ...

    Args:
        func: The function to decorate (when used without parentheses).
        name: Optional custom span name. Defaults to the function name.
        attributes: Optional static span attributes.

    Returns:
        Decorated function that creates a span on each invocation.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        span_name = name if name is not None else fn.__name__

        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with get_tracer().start_as_current_span(
                span_name,
                record_exception=False,
                set_status_on_exception=False,
            ) as span:
                if attributes:
                    for key, value in attributes.items():
                        span.set_attribute(key, value)
                try:
                    return fn(*args, **kwargs)
                except Exception as e:
                    _record_error(span, e)
                    raise

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


@contextmanager
def create_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Create a span as a context manager.

    Nested calls create parent-child relationships automatically. Exceptions
    raised inside the block are recorded on the span and re-raised.

    Args:
        name: The name for the span.
        attributes: Optional dictionary of attributes to set on the span.

    Yields:
        The created span for additional attribute setting.

    Example:
        >>> with create_span("schema.compile", attributes={"schema.unit": "ledger"}) as span:
        ...     span.set_attribute("schema.family_count", 3)
    """
    with get_tracer().start_as_current_span(
        name,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            _record_error(span, e)
            raise


__all__ = ["create_span", "get_tracer", "set_tracer", "traced"]
