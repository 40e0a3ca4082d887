"""OpenTelemetry tracing decorators."""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

# Type variable for generic function signatures
F = TypeVar("F", bound=Callable[..., Any])


def _record_failure(span: Span, exc: BaseException) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error.type", type(exc).__name__)
    span.set_attribute("error.message", str(exc))
    span.record_exception(exc)


def traced(span_name: str | None = None, service_name: str = "menu-digitizer") -> Callable[[F], F]:
    """Decorator to wrap a function call in an OpenTelemetry span.

    Sync and async functions are both supported. Exceptions are recorded
    on the span and re-raised unchanged.

    Args:
        span_name: Name for the span (defaults to the function name)
        service_name: Service name used for the tracer and span attributes

    Returns:
        Decorated function with tracing

    Example:
        @traced("menu_extraction")
        async def extract_menu(self, images: Sequence[MenuImage]) -> ExtractedMenu:
            ...
    """

    def decorator(func: F) -> F:
        # Use provided span name or default to function name
        name = span_name or func.__name__

        # Get tracer for this service
        tracer = trace.get_tracer(service_name)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name, record_exception=False) as span:
                # Add service name as span attribute
                span.set_attribute("service.name", service_name)

                # Add function name if using custom span name
                if span_name:
                    span.set_attribute("function.name", func.__name__)

                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record_failure(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(name, record_exception=False) as span:
                # Add service name as span attribute
                span.set_attribute("service.name", service_name)

                # Add function name if using custom span name
                if span_name:
                    span.set_attribute("function.name", func.__name__)

                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _record_failure(span, e)
                    raise
                span.set_attribute("success", True)
                return result

        # Return appropriate wrapper based on function type
        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
