"""Span processor that logs spans when they end."""

from __future__ import annotations

import logging
from typing import Optional

from relaytrace.tracer.provider import SpanProcessor


class LoggingSpanProcessor(SpanProcessor):
    """Logs span summary on end using the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger("relaytrace.traces")
        self.level = level

    def on_end(self, span) -> None:
        self.logger.log(
            self.level,
            "[trace] name=%s kind=%s trace_id=%s span_id=%s parent_span_id=%s "
            "status=%s duration_ns=%s events=%s attrs=%s",
            span.name,
            span.kind.name,
            span.context.trace_id,
            span.context.span_id,
            span.parent_span_id,
            span.status.name,
            span.duration_ns,
            [event.name for event in span.events],
            span.attributes,
        )
