"""Observability handle owning the OpenTelemetry tracer and meter providers."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from opentelemetry.sdk.metrics import MeterProvider as OTelMeterProvider
from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.resources import Resource as OTelResource
from opentelemetry.sdk.trace import SpanProcessor as OTelSpanProcessor
from opentelemetry.sdk.trace import TracerProvider as OTelTracerProvider
from opentelemetry.trace import SpanKind

from relaytrace.context.context import Context
from relaytrace.metrics.counters import RequestCounters
from relaytrace.tracer.span import Span, SpanStatus
from relaytrace.tracer.tracer import ParentLike, Tracer

logger = logging.getLogger(__name__)

METER_NAME = "relaytrace"


class SpanProcessor:
    """
    Base span processor interface for relaytrace enrichment processors.

    Enrichment processors see relaytrace spans: ``on_start`` right after
    creation and ``on_end`` before the OTel span is ended (still mutable).
    Export processors use OTel's SpanProcessor interface instead.
    """

    def on_start(self, span) -> None:
        """Called when a span starts."""
        pass

    def on_end(self, span) -> None:
        """
        Called when a span ends.

        Note: This is called BEFORE the OTel span ends, so the span is still mutable.
        """
        pass

    def shutdown(self) -> None:
        """Shutdown the processor."""
        pass

    def force_flush(self, timeout: Optional[float] = None) -> None:
        """Force flush any pending spans."""
        pass


class Telemetry:
    """
    Explicitly constructed observability handle.

    One instance per process is passed to every component that traces or
    counts: the span factory (``get_tracer``/``start_span``), the propagation
    relay and the handlers. Nothing is registered globally.
    """

    def __init__(
        self,
        resource: Optional[Dict[str, str]] = None,
        *,
        metric_readers: Optional[List[MetricReader]] = None,
        metrics_enabled: bool = True,
        propagation_enabled: bool = True,
    ) -> None:
        """
        Initialize the tracer and meter providers.

        Args:
            resource: Resource attributes dictionary (converted to OTel Resource)
            metric_readers: Readers attached to the meter provider
            metrics_enabled: When False the request counters record nothing
            propagation_enabled: When False no trace context crosses hops
        """
        otel_resource = OTelResource.create(resource or {})
        self._otel_provider = OTelTracerProvider(resource=otel_resource)
        self._meter_provider = OTelMeterProvider(
            resource=otel_resource,
            metric_readers=list(metric_readers or []),
        )

        self.resource = resource or {}
        self.metrics_enabled = metrics_enabled
        self.propagation_enabled = propagation_enabled

        self._span_processors: List[SpanProcessor] = []
        self._export_processors: List[OTelSpanProcessor] = []

        self._tracers: Dict[str, Tracer] = {}
        self._lock = threading.Lock()

        meter = self._meter_provider.get_meter(METER_NAME) if metrics_enabled else None
        self.counters = RequestCounters(meter, enabled=metrics_enabled)

    def get_tracer(self, name: str) -> Tracer:
        """Get a tracer by instrumentation scope name (cached)."""
        with self._lock:
            tracer = self._tracers.get(name)
            if tracer is None:
                tracer = Tracer(self, name)
                self._tracers[name] = tracer
            return tracer

    def add_span_processor(self, processor: Any) -> None:
        """
        Add a span processor.

        OTel processors go to the OTel provider (export path); anything else
        is treated as a relaytrace enrichment processor.
        """
        if isinstance(processor, OTelSpanProcessor):
            self._otel_provider.add_span_processor(processor)
            self._export_processors.append(processor)
        else:
            self._span_processors.append(processor)

    def start_span(
        self,
        tracer_name: str,
        operation_name: str,
        parent: ParentLike = None,
        kind: Optional[SpanKind] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Span, Context]:
        """Start a span on the named tracer. See Tracer.start_span."""
        return self.get_tracer(tracer_name).start_span(
            operation_name, parent=parent, kind=kind, attributes=attributes
        )

    def end_span(self, span: Span, status: SpanStatus, description: Optional[str] = None) -> None:
        span.end(status, description)

    def force_flush(self, timeout: Optional[float] = None) -> None:
        """Force flush all processors and metric readers."""
        timeout_millis = int(timeout * 1000) if timeout else 30000
        self._otel_provider.force_flush(timeout_millis=timeout_millis)
        self._meter_provider.force_flush(timeout_millis=timeout_millis)

        for processor in self._span_processors:
            try:
                processor.force_flush(timeout=timeout)
            except Exception:
                logger.exception("Span processor %r failed to flush", processor)

    def shutdown(self) -> None:
        """Shutdown the providers and all processors."""
        self._otel_provider.shutdown()
        self._meter_provider.shutdown()

        for processor in self._span_processors:
            try:
                processor.shutdown()
            except Exception:
                logger.exception("Span processor %r failed to shut down", processor)
