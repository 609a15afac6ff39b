"""In-memory span recorder for tests and local inspection."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from relaytrace.tracer.provider import SpanProcessor
from relaytrace.tracer.span import Span


class InMemorySpanRecorder(SpanProcessor):
    """Keeps every started and ended span so span trees can be checked."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started: List[Span] = []
        self._ended: List[Span] = []

    def on_start(self, span: Span) -> None:
        with self._lock:
            self._started.append(span)

    def on_end(self, span: Span) -> None:
        with self._lock:
            self._ended.append(span)

    @property
    def started(self) -> List[Span]:
        with self._lock:
            return list(self._started)

    @property
    def ended(self) -> List[Span]:
        with self._lock:
            return list(self._ended)

    def open_spans(self) -> List[Span]:
        """Spans that were started but never ended."""
        with self._lock:
            ended_ids = {id(span) for span in self._ended}
            return [span for span in self._started if id(span) not in ended_ids]

    def by_name(self, name: str) -> List[Span]:
        return [span for span in self.ended if span.name == name]

    def find(self, span_id: str) -> Optional[Span]:
        for span in self.started:
            if span.context.span_id == span_id:
                return span
        return None

    def traces(self) -> Dict[str, List[Span]]:
        """Ended spans grouped by trace id."""
        grouped: Dict[str, List[Span]] = {}
        for span in self.ended:
            grouped.setdefault(span.context.trace_id, []).append(span)
        return grouped

    def clear(self) -> None:
        with self._lock:
            self._started.clear()
            self._ended.clear()
