"""Context utilities: explicit span context and the W3C codec."""

from relaytrace.context.context import Context
from relaytrace.context.propagators import (
    TRACEPARENT_HEADER,
    decode,
    encode,
    extract_or_none,
    format_traceparent,
    inject,
    parse_traceparent,
)

__all__ = [
    "Context",
    "TRACEPARENT_HEADER",
    "encode",
    "decode",
    "inject",
    "extract_or_none",
    "format_traceparent",
    "parse_traceparent",
]
