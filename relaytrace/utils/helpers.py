"""Helper functions for OpenTelemetry compatibility."""

from __future__ import annotations


def format_trace_id(trace_id: int) -> str:
    """
    Format OTel trace_id (int) to hex string.

    Args:
        trace_id: OTel trace_id as a 128-bit int

    Returns:
        32-character hex string
    """
    return format(trace_id, '032x')


def format_span_id(span_id: int) -> str:
    """
    Format OTel span_id (int) to hex string.

    Args:
        span_id: OTel span_id as a 64-bit int

    Returns:
        16-character hex string
    """
    return format(span_id, '016x')


def parse_trace_id(hex_string: str) -> int:
    """Parse a 32-character hex trace_id to an OTel int."""
    if not hex_string:
        return 0
    return int(hex_string, 16)


def parse_span_id(hex_string: str) -> int:
    """Parse a 16-character hex span_id to an OTel int."""
    if not hex_string:
        return 0
    return int(hex_string, 16)
