"""Tracer components: span factory and observability handle."""

from relaytrace.tracer.provider import SpanProcessor, Telemetry
from relaytrace.tracer.span import Span, SpanEvent, SpanStatus
from relaytrace.tracer.span_context import TraceContext
from relaytrace.tracer.tracer import Tracer

__all__ = [
    "Span",
    "SpanEvent",
    "SpanStatus",
    "TraceContext",
    "Tracer",
    "Telemetry",
    "SpanProcessor",
]
