"""Tests for the entrypoint/worker handler chain."""

import asyncio
import random
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest
from opentelemetry.trace import SpanKind

from relaytrace.config import RelaytraceConfig
from relaytrace.context import TRACEPARENT_HEADER
from relaytrace.errors import TransportError
from relaytrace.instrumentation import (
    DiceHandler,
    EntrypointHandler,
    PropagationRelay,
    WorkerHandler,
    create_app,
)
from relaytrace.tracer import SpanStatus

TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"
SPAN_ID = "00f067aa0ba902b7"
HEADERS = {TRACEPARENT_HEADER: f"00-{TRACE_ID}-{SPAN_ID}-01"}


class FixedRandom:
    """Stand-in rng returning fixed draws."""

    def __init__(self, draw: int, flip: float) -> None:
        self.draw = draw
        self.flip = flip

    def randint(self, a: int, b: int) -> int:
        return self.draw

    def random(self) -> float:
        return self.flip


class TestWorkerHandler:
    def test_worker_span_tree(self, telemetry, recorder):
        value = WorkerHandler(telemetry).handle(HEADERS)

        assert 2 <= value <= 19
        (worker,) = recorder.by_name("worker")
        (decision,) = recorder.by_name("is-odd")
        assert worker.context.trace_id == TRACE_ID
        assert worker.parent_span_id == SPAN_ID
        assert worker.kind == SpanKind.SERVER
        assert decision.context.trace_id == TRACE_ID
        assert decision.parent_span_id == worker.context.span_id
        assert decision.kind == SpanKind.INTERNAL
        assert worker.status == SpanStatus.OK
        assert decision.status == SpanStatus.OK
        assert recorder.open_spans() == []

    def test_records_decision_and_result(self, telemetry, recorder):
        value = WorkerHandler(telemetry).handle(HEADERS)

        (worker,) = recorder.by_name("worker")
        (decision,) = recorder.by_name("is-odd")
        decision_event = decision.events[0]
        assert decision_event.name == "decision"
        assert decision_event.attributes["is_odd"] == (value % 2 == 1)
        assert worker.events[-1].name == "computed"
        assert worker.events[-1].attributes == {"value": value}
        assert worker.attributes["worker.result"] == value
        assert telemetry.counters.success == 1

    @pytest.mark.parametrize(
        "draw, flip, expected",
        [(1, 0.9, 2), (1, 0.1, 3), (9, 0.9, 18), (9, 0.1, 19)],
    )
    def test_value_bounds(self, telemetry, draw, flip, expected):
        worker = WorkerHandler(telemetry, rng=FixedRandom(draw, flip))
        assert worker.handle({}) == expected

    def test_missing_context_starts_new_root(self, telemetry, recorder):
        WorkerHandler(telemetry).handle({})
        (worker,) = recorder.by_name("worker")
        assert worker.parent_span_id is None

    def test_malformed_context_degrades_to_root(self, telemetry, recorder):
        value = WorkerHandler(telemetry).handle({TRACEPARENT_HEADER: "00-zzzz-01"})
        assert 2 <= value <= 19
        (worker,) = recorder.by_name("worker")
        assert worker.parent_span_id is None
        assert telemetry.counters.success == 1

    def test_propagation_disabled_ignores_context(self, telemetry, recorder):
        WorkerHandler(telemetry, propagate=False).handle(HEADERS)
        (worker,) = recorder.by_name("worker")
        assert worker.context.trace_id != TRACE_ID
        assert worker.parent_span_id is None

    def test_concurrent_requests_count_exactly(self, telemetry, recorder):
        worker = WorkerHandler(telemetry)
        with ThreadPoolExecutor(max_workers=8) as pool:
            values = list(pool.map(lambda _: worker.handle(HEADERS), range(200)))

        assert all(2 <= v <= 19 for v in values)
        assert telemetry.counters.success == 200
        assert telemetry.counters.failure == 0
        assert len(recorder.started) == len(recorder.ended) == 400

    def test_odd_fraction_is_about_half(self, telemetry):
        worker = WorkerHandler(telemetry, rng=random.Random(1234))
        runs = 4000
        odd = sum(worker.handle({}) % 2 for _ in range(runs))
        assert 0.45 < odd / runs < 0.55


class TestEntrypointHandler:
    def test_scenario_reachable_worker(self, telemetry, recorder):
        worker_app = create_app(RelaytraceConfig(), telemetry, role="worker")

        async def run():
            transport = httpx.ASGITransport(app=worker_app)
            async with httpx.AsyncClient(transport=transport) as client:
                relay = PropagationRelay(telemetry, client)
                handler = EntrypointHandler(telemetry, relay, "http://worker.test")
                return await handler.handle()

        value = asyncio.run(run())

        assert 2 <= value <= 19
        (entry,) = recorder.by_name("entrypoint")
        (worker,) = recorder.by_name("worker")
        (decision,) = recorder.by_name("is-odd")
        assert len(recorder.ended) == 3
        assert entry.parent_span_id is None
        assert worker.parent_span_id == entry.context.span_id
        assert decision.parent_span_id == worker.context.span_id
        assert len(recorder.traces()) == 1
        assert entry.status == SpanStatus.OK
        assert entry.attributes["entrypoint.result"] == value
        assert recorder.open_spans() == []
        assert telemetry.counters.success == 2
        assert telemetry.counters.failure == 0

    def test_scenario_unreachable_worker(self, telemetry, recorder):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
                relay = PropagationRelay(telemetry, client)
                handler = EntrypointHandler(telemetry, relay, "http://worker.test")
                return await handler.handle()

        with pytest.raises(TransportError):
            asyncio.run(run())

        (entry,) = recorder.by_name("entrypoint")
        assert entry.status == SpanStatus.ERROR
        assert entry.status_description.startswith("request failed")
        assert entry.is_ended
        assert recorder.open_spans() == []
        assert telemetry.counters.failure == 1
        assert telemetry.counters.success == 0

    def test_entrypoint_span_is_ended_once(self, telemetry, recorder, caplog):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def run(transport):
            async with httpx.AsyncClient(transport=transport) as client:
                relay = PropagationRelay(telemetry, client)
                handler = EntrypointHandler(telemetry, relay, "http://worker.test")
                return await handler.handle()

        caplog.set_level("DEBUG", logger="relaytrace")
        asyncio.run(run(httpx.MockTransport(lambda request: httpx.Response(200, text="4"))))
        with pytest.raises(TransportError):
            asyncio.run(run(httpx.MockTransport(refuse)))

        ok, failed = recorder.by_name("entrypoint")
        assert ok.status == SpanStatus.OK
        assert failed.status == SpanStatus.ERROR
        assert len(recorder.ended) == 2
        assert "already ended" not in caplog.text

    def test_cancelled_request_ends_span(self, telemetry, recorder):
        async def hang(request):
            await asyncio.Event().wait()

        async def run():
            async with httpx.AsyncClient(transport=httpx.MockTransport(hang)) as client:
                relay = PropagationRelay(telemetry, client)
                handler = EntrypointHandler(telemetry, relay, "http://worker.test")
                task = asyncio.create_task(handler.handle())
                while not recorder.started:
                    await asyncio.sleep(0)
                for _ in range(5):
                    await asyncio.sleep(0)
                task.cancel()
                with pytest.raises(asyncio.CancelledError):
                    await task

        asyncio.run(run())

        (entry,) = recorder.by_name("entrypoint")
        assert entry.is_ended
        assert entry.status == SpanStatus.ERROR
        assert entry.status_description == "cancelled"
        assert "cancelled" in [e.name for e in entry.events]
        assert recorder.open_spans() == []
        assert telemetry.counters.failure == 0
        assert telemetry.counters.success == 0


class TestDiceHandler:
    def test_roll_is_a_die_face(self, telemetry, recorder):
        dice = DiceHandler(telemetry)
        rolls = {dice.handle() for _ in range(200)}
        assert rolls <= set(range(1, 7))
        span = recorder.by_name("randnum")[0]
        assert span.attributes["dice.value"] in range(1, 7)
        assert span.status == SpanStatus.OK

    def test_roll_joins_incoming_trace(self, telemetry, recorder):
        DiceHandler(telemetry).handle(HEADERS)
        (span,) = recorder.by_name("randnum")
        assert span.context.trace_id == TRACE_ID
