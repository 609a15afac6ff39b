"""Request counters exported through OpenTelemetry metrics."""

from relaytrace.metrics.counters import (
    FAILURE_COUNTER,
    SUCCESS_COUNTER,
    CounterSnapshot,
    RequestCounters,
)

__all__ = [
    "FAILURE_COUNTER",
    "SUCCESS_COUNTER",
    "CounterSnapshot",
    "RequestCounters",
]
