"""Utility functions for relaytrace."""

from relaytrace.utils.helpers import (
    format_trace_id,
    format_span_id,
    parse_trace_id,
    parse_span_id,
)

__all__ = [
    "format_trace_id",
    "format_span_id",
    "parse_trace_id",
    "parse_span_id",
]
