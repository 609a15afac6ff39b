"""Tracer using the OpenTelemetry SDK with explicit parent contexts."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple, Union, TYPE_CHECKING

from opentelemetry import context as context_api
from opentelemetry.trace import NonRecordingSpan, SpanKind, set_span_in_context
from opentelemetry.trace import SpanContext as OTelSpanContext, TraceFlags
from opentelemetry.trace import Tracer as OTelTracer

from relaytrace.context.context import Context
from relaytrace.tracer.span import Span
from relaytrace.tracer.span_context import TraceContext
from relaytrace.utils.helpers import parse_span_id, parse_trace_id

if TYPE_CHECKING:
    from relaytrace.tracer.provider import Telemetry

logger = logging.getLogger(__name__)

ParentLike = Union[Context, TraceContext, None]


def _parent_trace(parent: ParentLike) -> Optional[TraceContext]:
    """Resolve a parent argument to a usable TraceContext, or None for a root."""
    if parent is None:
        return None
    trace = parent.trace if isinstance(parent, Context) else parent
    if not trace.is_valid():
        logger.debug("Invalid parent context %s, starting a new trace", trace)
        return None
    if not trace.has_parent_span:
        return None
    return trace


class Tracer:
    """
    Tracer wrapper that uses an OpenTelemetry Tracer internally.

    Parents are always passed explicitly. The ambient OpenTelemetry context is
    never read, so a span started without a parent is a new trace root.
    """

    def __init__(self, telemetry: "Telemetry", instrumentation_scope: str):
        """
        Initialize tracer with OpenTelemetry Tracer.

        Args:
            telemetry: Owning observability handle
            instrumentation_scope: Instrumentation scope name
        """
        self._telemetry = telemetry
        self.instrumentation_scope = instrumentation_scope
        self._otel_tracer: OTelTracer = telemetry._otel_provider.get_tracer(instrumentation_scope)

    def start_span(
        self,
        name: str,
        parent: ParentLike = None,
        kind: Optional[SpanKind] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Span, Context]:
        """
        Start a new span.

        Args:
            name: Operation name
            parent: Parent Context or TraceContext; None starts a new trace
            kind: Span kind; defaults to SERVER for roots and remote parents,
                INTERNAL for local parents
            attributes: Optional attributes dictionary

        Returns:
            The open span and a Context that makes it current for children
        """
        parent_trace = _parent_trace(parent)

        if kind is None:
            kind = SpanKind.SERVER if parent_trace is None or parent_trace.is_remote else SpanKind.INTERNAL

        if parent_trace is None:
            # Empty context, not the ambient one
            otel_parent_context = context_api.Context()
            parent_span_id = None
        else:
            otel_span_context = OTelSpanContext(
                trace_id=parse_trace_id(parent_trace.trace_id),
                span_id=parse_span_id(parent_trace.span_id),
                is_remote=parent_trace.is_remote,
                trace_flags=TraceFlags(parent_trace.trace_flags),
            )
            otel_parent_context = set_span_in_context(NonRecordingSpan(otel_span_context))
            parent_span_id = parent_trace.span_id

        otel_span = self._otel_tracer.start_span(
            name=name,
            context=otel_parent_context,
            kind=kind,
            attributes=attributes,
        )

        span = Span(otel_span, self, name, kind, parent_span_id)
        for key, value in (attributes or {}).items():
            span._attributes[key] = value

        self._run_start_processors(span)
        return span, Context(trace=span.context, span=span)

    def _run_start_processors(self, span: Span) -> None:
        for processor in self._telemetry._span_processors:
            try:
                processor.on_start(span)
            except Exception:
                # Processors should not crash tracing
                logger.exception("Span processor %r failed on start", processor)

    def _run_end_processors(self, span: Span) -> None:
        """
        Run enrichment processors before the OTel span ends.

        Called by Span.end() while the span is still mutable.
        """
        for processor in self._telemetry._span_processors:
            try:
                processor.on_end(span)
            except Exception:
                logger.exception("Span processor %r failed on end", processor)
