"""Explicit span context threaded through calls that create child spans."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from relaytrace.tracer.span_context import TraceContext
    from relaytrace.tracer.span import Span


@dataclass(frozen=True)
class Context:
    """
    The trace position a piece of work runs under.

    ``span`` is the span that is current for this context; it is None when
    the context was decoded from a carrier and the span lives in another
    process. Pass a Context as ``parent`` to start a child span.
    """

    trace: "TraceContext"
    span: Optional["Span"] = None

    @classmethod
    def remote(cls, trace: "TraceContext") -> "Context":
        return cls(trace=trace, span=None)

    @property
    def is_remote(self) -> bool:
        return self.span is None and self.trace.is_remote
