"""Immutable trace metadata."""

from dataclasses import dataclass, field

INVALID_TRACE_ID = "0" * 32
INVALID_SPAN_ID = "0" * 16

_HEX = frozenset("0123456789abcdef")


def _is_hex(value: str, width: int) -> bool:
    return isinstance(value, str) and len(value) == width and set(value) <= _HEX


@dataclass(frozen=True)
class TraceContext:
    trace_id: str
    span_id: str
    trace_flags: int = 1  # 1 = sampled, 0 = not sampled
    is_remote: bool = field(default=False, compare=False)

    def is_valid(self) -> bool:
        return (
            _is_hex(self.trace_id, 32)
            and self.trace_id != INVALID_TRACE_ID
            and _is_hex(self.span_id, 16)
            and 0 <= self.trace_flags <= 0xFF
        )

    @property
    def has_parent_span(self) -> bool:
        """False when the span-id is all zeros (root of a propagated trace)."""
        return self.span_id != INVALID_SPAN_ID

    @property
    def sampled(self) -> bool:
        return bool(self.trace_flags & 0x01)
