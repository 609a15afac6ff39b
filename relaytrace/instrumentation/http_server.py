"""HTTP server helpers for extracting context and creating server spans."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from opentelemetry.trace import SpanKind

from relaytrace.context.context import Context
from relaytrace.context.propagators import extract_or_none
from relaytrace.tracer.span import Span
from relaytrace.tracer.tracer import Tracer


def extract_parent_context(headers: Mapping[str, str]) -> Optional[Context]:
    """Parse traceparent from headers; missing or malformed yields None."""
    trace = extract_or_none(headers)
    if trace is None:
        return None
    return Context.remote(trace)


def start_server_span(
    tracer: Tracer,
    name: str,
    headers: Optional[Mapping[str, str]],
    attributes: Optional[Dict[str, Any]] = None,
) -> Tuple[Span, Context]:
    """
    Start a server span parented to the context carried by ``headers``.

    Pass ``headers=None`` to ignore any incoming context. The caller owns the
    returned span and should use it with ``with``.
    """
    parent = extract_parent_context(headers) if headers is not None else None
    return tracer.start_span(name, parent=parent, kind=SpanKind.SERVER, attributes=attributes)
