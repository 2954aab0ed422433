"""OpenTelemetry instrumentation helpers.

Provides:
- Tracer access for spans
- Function decorator wrapping sync or async callables in a span

Spans are only exported to the console when explicitly enabled; otherwise
the tracer provider is installed without processors so spans are cheap
no-ops that still propagate context.
"""

import inspect
from functools import wraps
from typing import Any, Callable

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter


_tracer_provider: TracerProvider | None = None


def init_telemetry(service_name: str = "oracle-kb", console_export: bool = False) -> None:
    """Initialize OpenTelemetry tracing.

    Call this once at application startup. Later calls are ignored.

    Args:
        service_name: Name of the service for traces (default: "oracle-kb")
        console_export: Print finished spans to stdout (development only)
    """
    global _tracer_provider

    if _tracer_provider is not None:
        return

    _tracer_provider = TracerProvider(
        resource=Resource.create({"service.name": service_name})
    )

    if console_export:
        _tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(_tracer_provider)


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer for creating spans.

    Args:
        name: Tracer name (typically module name like "oracle_kb_storage.search")

    Example:
        >>> tracer = get_tracer("oracle_kb_storage.search")
        >>> with tracer.start_as_current_span("lexical_leg"):
        ...     pass
    """
    if _tracer_provider is None:
        init_telemetry()

    return trace.get_tracer(name)


def instrument_function(span_name: str | None = None) -> Callable:
    """Decorator to automatically create a span for a function.

    Args:
        span_name: Name for the span (default: function name)

    Example:
        >>> @instrument_function("hybrid_search")
        ... async def hybrid_search(ctx, query):
        ...     ...
    """

    def decorator(func: Callable) -> Callable:
        actual_span_name = span_name or func.__name__

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(actual_span_name):
                return await func(*args, **kwargs)

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            with tracer.start_as_current_span(actual_span_name):
                return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
