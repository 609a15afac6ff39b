"""Span implementation - thin wrapper around an OpenTelemetry SDK span."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from opentelemetry.trace import Span as OTelSpan, SpanKind, Status, StatusCode

from relaytrace.tracer.span_context import TraceContext
from relaytrace.utils.helpers import format_span_id, format_trace_id

if TYPE_CHECKING:
    from relaytrace.tracer.tracer import Tracer

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


class SpanStatus(Enum):
    UNSET = 0
    OK = 1
    ERROR = 2


_OTEL_STATUS = {
    SpanStatus.UNSET: StatusCode.UNSET,
    SpanStatus.OK: StatusCode.OK,
    SpanStatus.ERROR: StatusCode.ERROR,
}


@dataclass(frozen=True)
class SpanEvent:
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    timestamp_ns: int = 0


class Span:
    """
    Wrapper around an OpenTelemetry span.

    Keeps a local, inspectable copy of what was recorded (status, events,
    attributes, timestamps) so handlers and processors can read it back. The
    span is owned by the call frame that started it and must be ended exactly
    once; use it as a context manager to guarantee that.
    """

    def __init__(
        self,
        otel_span: OTelSpan,
        tracer: "Tracer",
        name: str,
        kind: SpanKind,
        parent_span_id: Optional[str] = None,
    ) -> None:
        """
        Initialize span wrapper.

        Args:
            otel_span: OpenTelemetry span instance
            tracer: relaytrace Tracer that created the span
            name: Operation name
            kind: Span kind (server, client, internal)
            parent_span_id: Parent span ID (hex string), None for roots
        """
        self._otel_span = otel_span
        self.tracer = tracer
        self.name = name
        self.kind = kind
        self.parent_span_id = parent_span_id

        otel_context = otel_span.get_span_context()
        self.context = TraceContext(
            trace_id=format_trace_id(otel_context.trace_id),
            span_id=format_span_id(otel_context.span_id),
            trace_flags=int(otel_context.trace_flags),
        )

        self.start_time_ns = time.time_ns()
        self.end_time_ns: Optional[int] = None

        self.status = SpanStatus.UNSET
        self.status_description: Optional[str] = None

        self._attributes: Dict[str, Any] = {}
        self._events: List[SpanEvent] = []

    @property
    def attributes(self) -> Dict[str, Any]:
        """Get a copy of the span attributes."""
        return dict(self._attributes)

    @property
    def events(self) -> List[SpanEvent]:
        """Get span events in the order they were added."""
        return list(self._events)

    @property
    def is_ended(self) -> bool:
        return self.end_time_ns is not None

    @property
    def duration_ns(self) -> Optional[int]:
        """Get span duration in nanoseconds."""
        if self.end_time_ns is None:
            return None
        return self.end_time_ns - self.start_time_ns

    def set_attribute(self, key: str, value: Any) -> None:
        """Set an attribute on the span."""
        if self.is_ended:
            logger.debug("Ignoring attribute %s on ended span %s", key, self.name)
            return
        self._attributes[key] = value
        self._otel_span.set_attribute(key, value)

    def add_event(
        self,
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
        timestamp_ns: Optional[int] = None,
    ) -> None:
        """Append an event to the span."""
        if self.is_ended:
            logger.debug("Ignoring event %s on ended span %s", name, self.name)
            return

        if timestamp_ns is None:
            timestamp_ns = time.time_ns()
        self._events.append(SpanEvent(name, dict(attributes or {}), timestamp_ns))
        self._otel_span.add_event(name=name, attributes=attributes, timestamp=timestamp_ns)

    def record_exception(self, error: BaseException) -> None:
        """Record an exception event on the span and mark it as failed."""
        if self.is_ended:
            return

        self._events.append(
            SpanEvent(
                "exception",
                {"exception.type": type(error).__name__, "exception.message": str(error)},
                time.time_ns(),
            )
        )
        self._otel_span.record_exception(error)
        # Keep a failure reason the owner already set
        if self.status != SpanStatus.ERROR:
            self.set_status(SpanStatus.ERROR, str(error))

    def set_status(self, status: SpanStatus, description: Optional[str] = None) -> None:
        """Set the span status."""
        if self.is_ended:
            return

        self.status = status
        self.status_description = description
        # OTel only keeps a description on ERROR
        if status != SpanStatus.ERROR:
            description = None
        self._otel_span.set_status(Status(status_code=_OTEL_STATUS[status], description=description))

    def end(self, status: Optional[SpanStatus] = None, description: Optional[str] = None) -> None:
        """
        End the span.

        An explicit status overrides the current one; an UNSET status becomes
        OK. The end timestamp is stamped once, later calls are ignored.
        """
        if self.is_ended:
            logger.debug("Span %s (%s) already ended", self.name, self.context.span_id)
            return

        if status is not None:
            self.set_status(status, description)
        elif self.status == SpanStatus.UNSET:
            self.set_status(SpanStatus.OK)

        self.end_time_ns = time.time_ns()

        # Enrichment processors see the span before the OTel span is frozen
        self.tracer._run_end_processors(self)
        self._otel_span.end(end_time=self.end_time_ns)

    def _close(self, exc: Optional[BaseException]) -> None:
        if exc is not None and not self.is_ended:
            if isinstance(exc, asyncio.CancelledError):
                self.add_event(CANCELLED)
                self.set_status(SpanStatus.ERROR, CANCELLED)
            else:
                self.record_exception(exc)
        self.end()

    # Context manager support
    def __enter__(self) -> "Span":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._close(exc)
        return False

    async def __aenter__(self) -> "Span":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._close(exc)
        return False

    def __repr__(self) -> str:
        return (
            f"Span(name={self.name!r}, trace_id={self.context.trace_id}, "
            f"span_id={self.context.span_id}, parent_span_id={self.parent_span_id}, "
            f"status={self.status.name})"
        )
