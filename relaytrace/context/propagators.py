"""
W3C trace context propagation.

Encoding goes through OpenTelemetry's TraceContextTextMapPropagator. Decoding
does not: OTel's extractor silently drops invalid headers (so missing and
malformed look the same) and rejects all-zero span ids, which must round-trip
here. parse_traceparent validates the header itself instead.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Mapping, MutableMapping, Optional

from opentelemetry.trace import NonRecordingSpan, set_span_in_context
from opentelemetry.trace import SpanContext as OTelSpanContext, TraceFlags
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from relaytrace.errors import MalformedContext
from relaytrace.tracer.span_context import INVALID_TRACE_ID, TraceContext
from relaytrace.utils.helpers import parse_span_id, parse_trace_id

logger = logging.getLogger(__name__)

TRACEPARENT_HEADER = "traceparent"
SUPPORTED_VERSION = "00"

_TRACEPARENT_RE = re.compile(
    r"^(?P<version>[0-9a-f]{2})-(?P<trace_id>[0-9a-f]{32})-"
    r"(?P<span_id>[0-9a-f]{16})-(?P<trace_flags>[0-9a-f]{2})$"
)

# Use OTel's W3C Trace Context propagator for the outbound side
_propagator = TraceContextTextMapPropagator()


def _find_header(carrier: Mapping[str, str]) -> Optional[str]:
    """Case-insensitive traceparent lookup."""
    if TRACEPARENT_HEADER in carrier:
        return carrier[TRACEPARENT_HEADER]
    for key, value in carrier.items():
        if key.lower() == TRACEPARENT_HEADER:
            return value
    return None


def format_traceparent(context: TraceContext) -> str:
    """
    Format traceparent header value (W3C Trace Context standard).

    Uses OpenTelemetry's propagator internally.
    """
    if not context.is_valid():
        raise MalformedContext("cannot encode an invalid trace context")

    otel_context = OTelSpanContext(
        trace_id=parse_trace_id(context.trace_id),
        span_id=parse_span_id(context.span_id),
        is_remote=False,
        trace_flags=TraceFlags(context.trace_flags),
    )
    carrier: Dict[str, str] = {}
    if otel_context.is_valid:
        _propagator.inject(carrier, context=set_span_in_context(NonRecordingSpan(otel_context)))
    if TRACEPARENT_HEADER not in carrier:
        # OTel refuses all-zero span ids; the wire format does not.
        carrier[TRACEPARENT_HEADER] = (
            f"{SUPPORTED_VERSION}-{context.trace_id}-{context.span_id}-{context.trace_flags:02x}"
        )
    return carrier[TRACEPARENT_HEADER]


def parse_traceparent(header_value: str) -> TraceContext:
    """
    Parse a traceparent header value into a TraceContext.

    Raises MalformedContext for anything that is not a version-00 header with
    well-formed lowercase hex fields and a non-zero trace id.
    """
    if not isinstance(header_value, str):
        raise MalformedContext("traceparent is not a string", repr(header_value))

    match = _TRACEPARENT_RE.match(header_value.strip())
    if match is None:
        raise MalformedContext("traceparent is not well-formed", header_value)
    if match.group("version") != SUPPORTED_VERSION:
        raise MalformedContext("unsupported traceparent version", header_value)
    if match.group("trace_id") == INVALID_TRACE_ID:
        raise MalformedContext("traceparent has an all-zero trace id", header_value)

    return TraceContext(
        trace_id=match.group("trace_id"),
        span_id=match.group("span_id"),
        trace_flags=int(match.group("trace_flags"), 16),
        is_remote=True,
    )


def encode(context: TraceContext) -> Dict[str, str]:
    """Serialize a context into a carrier holding a single traceparent key."""
    return {TRACEPARENT_HEADER: format_traceparent(context)}


def decode(carrier: Mapping[str, str]) -> Optional[TraceContext]:
    """
    Deserialize a carrier.

    Returns None when no traceparent is present (start a new root). Raises
    MalformedContext when one is present but invalid. Other keys are ignored.
    """
    header_value = _find_header(carrier)
    if header_value is None:
        return None
    return parse_traceparent(header_value)


def inject(carrier: MutableMapping[str, str], context: TraceContext) -> MutableMapping[str, str]:
    """
    Merge the encoded context into an existing carrier.

    Any existing traceparent (in any letter case) is replaced; all other keys
    are left alone. Returns the same mapping for convenience.
    """
    encoded = encode(context)
    for key in [k for k in carrier.keys() if k.lower() == TRACEPARENT_HEADER]:
        del carrier[key]
    carrier.update(encoded)
    return carrier


def extract_or_none(carrier: Mapping[str, str]) -> Optional[TraceContext]:
    """Like decode(), but a malformed traceparent degrades to None."""
    try:
        return decode(carrier)
    except MalformedContext as exc:
        logger.warning("Ignoring malformed trace context: %s", exc)
        return None
