"""Tests for the traceparent codec."""

import random

import pytest
from opentelemetry import trace as otel_trace
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from relaytrace.context import TRACEPARENT_HEADER, decode, encode, extract_or_none, inject
from relaytrace.errors import MalformedContext
from relaytrace.tracer import TraceContext
from relaytrace.utils import format_span_id, format_trace_id

TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"
SPAN_ID = "00f067aa0ba902b7"
HEADER = f"00-{TRACE_ID}-{SPAN_ID}-01"


def random_context(rng: random.Random) -> TraceContext:
    return TraceContext(
        trace_id=format_trace_id(rng.getrandbits(128) or 1),
        span_id=format_span_id(rng.getrandbits(64)),
        trace_flags=rng.choice([0, 1]),
    )


def test_encode_produces_single_canonical_key():
    carrier = encode(TraceContext(TRACE_ID, SPAN_ID, 1))
    assert carrier == {TRACEPARENT_HEADER: HEADER}


def test_encode_unsampled_flags():
    carrier = encode(TraceContext(TRACE_ID, SPAN_ID, 0))
    assert carrier[TRACEPARENT_HEADER].endswith("-00")


def test_round_trip_random_contexts():
    rng = random.Random(7)
    for _ in range(200):
        context = random_context(rng)
        assert decode(encode(context)) == context


def test_round_trip_zero_span_id():
    context = TraceContext(TRACE_ID, "0" * 16, 1)
    assert decode(encode(context)) == context


def test_zero_span_id_survives_where_otel_extract_drops_it():
    carrier = {TRACEPARENT_HEADER: f"00-{TRACE_ID}-{'0' * 16}-01"}
    otel_ctx = TraceContextTextMapPropagator().extract(carrier)
    assert not otel_trace.get_current_span(otel_ctx).get_span_context().is_valid
    assert decode(carrier).span_id == "0" * 16


def test_decoded_context_is_remote():
    context = decode({TRACEPARENT_HEADER: HEADER})
    assert context.is_remote
    assert context.trace_id == TRACE_ID
    assert context.span_id == SPAN_ID
    assert context.trace_flags == 1


def test_missing_key_is_absent_not_error():
    assert decode({}) is None
    assert decode({"content-type": "text/plain"}) is None


def test_extra_keys_are_ignored():
    carrier = {TRACEPARENT_HEADER: HEADER, "tracestate": "vendor=1", "x-other": "y"}
    assert decode(carrier) == TraceContext(TRACE_ID, SPAN_ID, 1)


def test_key_lookup_is_case_insensitive():
    assert decode({"Traceparent": HEADER}) == TraceContext(TRACE_ID, SPAN_ID, 1)


@pytest.mark.parametrize(
    "value",
    [
        "",
        HEADER[:-1],
        f"00-{TRACE_ID[:-2]}-{SPAN_ID}-01",
        f"00-{TRACE_ID}-{SPAN_ID[:-1]}x-01",
        f"00-{TRACE_ID.upper()}-{SPAN_ID}-01",
        f"ff-{TRACE_ID}-{SPAN_ID}-01",
        f"01-{TRACE_ID}-{SPAN_ID}-01",
        f"00-{'0' * 32}-{SPAN_ID}-01",
        f"00-{TRACE_ID}-{SPAN_ID}-01-extra",
        "not a traceparent",
    ],
)
def test_malformed_values_raise(value):
    with pytest.raises(MalformedContext):
        decode({TRACEPARENT_HEADER: value})


def test_extract_or_none_degrades_malformed(caplog):
    assert extract_or_none({TRACEPARENT_HEADER: "garbage"}) is None
    assert "malformed" in caplog.text


def test_encode_rejects_invalid_context():
    with pytest.raises(MalformedContext):
        encode(TraceContext("0" * 32, SPAN_ID, 1))


def test_inject_preserves_other_keys_and_overwrites_traceparent():
    carrier = {"Traceparent": "00-stale", "x-request-id": "abc"}
    inject(carrier, TraceContext(TRACE_ID, SPAN_ID, 1))
    assert carrier == {"x-request-id": "abc", TRACEPARENT_HEADER: HEADER}
