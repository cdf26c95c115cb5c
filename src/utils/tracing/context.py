"""
Span helpers that work against the current span without explicit references.
"""

from contextlib import contextmanager

from opentelemetry import trace

from .tracer import get_tracer


def _attribute_value(value):
    if isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Context manager for tracing operations.

    Creates a span, sets attributes, records any exception on the span and
    re-raises it.

    Args:
        operation_name: Name of the operation being traced
        kind: Span kind (INTERNAL, CLIENT, ...)
        **attributes: Attributes to add to the span

    Yields:
        The active span

    Example:
        >>> with trace_operation("validate_table", table="HR.EMPLOYEES") as span:
        ...     span.set_attribute("rows", 42)
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(
        operation_name,
        kind=kind,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        for key, value in attributes.items():
            span.set_attribute(key, _attribute_value(value))

        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.set_attribute("error.message", str(e))
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attributes(**attributes):
    """Add attributes to the current span, if it is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        for key, value in attributes.items():
            current_span.set_attribute(key, _attribute_value(value))


def add_span_event(name: str, **attributes):
    """Add an event to the current span, if it is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(
            name,
            attributes={k: _attribute_value(v) for k, v in attributes.items()},
        )
