"""
Distributed tracing using OpenTelemetry.

Spans cover table validation, metadata resolution, extraction and
fingerprint reconciliation. Export is enabled with initialize_tracing().
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, is_tracing_enabled, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "is_tracing_enabled",
    "shutdown_tracing",
    "trace_operation",
    "add_span_attributes",
    "add_span_event",
]
