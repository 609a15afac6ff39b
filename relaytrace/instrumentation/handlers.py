"""Instrumented handler chain: entrypoint relays to worker."""

from __future__ import annotations

import logging
import random
from typing import Mapping, Optional

import httpx
from opentelemetry.trace import SpanKind

from relaytrace import payload
from relaytrace.errors import TransportError
from relaytrace.instrumentation.http_client import PropagationRelay
from relaytrace.instrumentation.http_server import start_server_span
from relaytrace.tracer.provider import Telemetry
from relaytrace.tracer.span import SpanStatus

logger = logging.getLogger(__name__)

ENTRYPOINT_ROUTE = "/entrypoint"
WORKER_ROUTE = "/worker"
RANDNUM_ROUTE = "/randnum"


def parse_int_body(response: httpx.Response) -> int:
    """Decode a plain-text decimal body; ValueError if it is not one."""
    return int(response.text.strip())


class EntrypointHandler:
    """
    Opens a root span and relays to the worker under it.

    Start -> SpanOpened -> Relayed -> Responded. The span is ended with OK and
    the worker's value on success, or with ERROR before TransportError is
    re-raised to the HTTP layer.
    """

    tracer_name = "entrypoint"

    def __init__(self, telemetry: Telemetry, relay: PropagationRelay, worker_url: str) -> None:
        self.telemetry = telemetry
        self.relay = relay
        self.worker_url = worker_url.rstrip("/") + WORKER_ROUTE
        self.tracer = telemetry.get_tracer(self.tracer_name)

    async def handle(self) -> int:
        span, ctx = self.tracer.start_span(
            "entrypoint",
            kind=SpanKind.SERVER,
            attributes={"http.method": "GET", "http.route": ENTRYPOINT_ROUTE},
        )
        with span:
            try:
                value = await self.relay.send_with_context(
                    ctx,
                    lambda: httpx.Request("GET", self.worker_url),
                    decode=parse_int_body,
                )
            except TransportError as exc:
                span.set_status(SpanStatus.ERROR, exc.reason)
                raise

            span.set_attribute("entrypoint.result", value)
            span.set_status(SpanStatus.OK)
            logger.debug("Entrypoint relayed value %d (trace %s)", value, span.context.trace_id)
            return value


class WorkerHandler:
    """
    Computes the payload under a span parented to the caller's context.

    Received -> ContextExtracted -> SpanOpened -> Computed -> Responded. A
    missing or malformed traceparent starts a new root instead of failing.
    """

    tracer_name = "worker"

    def __init__(
        self,
        telemetry: Telemetry,
        *,
        propagate: Optional[bool] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.telemetry = telemetry
        self.propagate = telemetry.propagation_enabled if propagate is None else propagate
        self.rng = rng
        self.tracer = telemetry.get_tracer(self.tracer_name)

    def handle(self, headers: Mapping[str, str]) -> int:
        span, ctx = start_server_span(
            self.tracer,
            "worker",
            headers if self.propagate else None,
            attributes={"http.method": "GET", "http.route": WORKER_ROUTE},
        )
        with span:
            drawn = payload.draw_value(self.rng)
            value = drawn * 2
            span.set_attribute("worker.draw", drawn)

            decision_span, _ = self.tracer.start_span("is-odd", parent=ctx)
            with decision_span:
                is_odd = payload.coin_flip(self.rng)
                decision_span.add_event("decision", {"is_odd": is_odd})
                if is_odd:
                    value += 1

            span.add_event("computed", {"value": value})
            span.set_attribute("worker.result", value)
            self.telemetry.counters.record_success(self.tracer_name)
            return value


class DiceHandler:
    """Rolls a six-sided die under a single server span."""

    tracer_name = "randnum"

    def __init__(self, telemetry: Telemetry, *, rng: Optional[random.Random] = None) -> None:
        self.telemetry = telemetry
        self.rng = rng
        self.tracer = telemetry.get_tracer(self.tracer_name)

    def handle(self, headers: Optional[Mapping[str, str]] = None) -> int:
        if not self.telemetry.propagation_enabled:
            headers = None
        span, _ = start_server_span(
            self.tracer,
            "randnum",
            headers,
            attributes={"http.method": "GET", "http.route": RANDNUM_ROUTE},
        )
        with span:
            value = payload.roll_die(self.rng)
            span.set_attribute("dice.value", value)
            logger.info("Generated random number: %d", value)
            return value
