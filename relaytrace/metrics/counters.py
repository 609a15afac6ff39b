"""Process-wide request success/failure counters."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from opentelemetry.metrics import Meter

SUCCESS_COUNTER = "request-success-count"
FAILURE_COUNTER = "request-failure-count"


@dataclass(frozen=True)
class CounterSnapshot:
    success: int
    failure: int


class RequestCounters:
    """
    Two monotonically increasing counters backed by OpenTelemetry instruments.

    Every increment is tagged with the hop that observed the outcome. A local
    tally is kept under a lock so callers can read the totals back; the OTel
    counters are what gets exported.
    """

    def __init__(self, meter: Optional[Meter], enabled: bool = True) -> None:
        self.enabled = enabled and meter is not None
        self._success_counter = None
        self._failure_counter = None
        if self.enabled:
            self._success_counter = meter.create_counter(
                SUCCESS_COUNTER, unit="1", description="Requests completed successfully"
            )
            self._failure_counter = meter.create_counter(
                FAILURE_COUNTER, unit="1", description="Requests that failed"
            )

        self._lock = threading.Lock()
        self._success = 0
        self._failure = 0

    def record_success(self, hop: str) -> None:
        if not self.enabled:
            return
        self._success_counter.add(1, {"hop": hop})
        with self._lock:
            self._success += 1

    def record_failure(self, hop: str) -> None:
        if not self.enabled:
            return
        self._failure_counter.add(1, {"hop": hop})
        with self._lock:
            self._failure += 1

    @property
    def success(self) -> int:
        with self._lock:
            return self._success

    @property
    def failure(self) -> int:
        with self._lock:
            return self._failure

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(success=self._success, failure=self._failure)
