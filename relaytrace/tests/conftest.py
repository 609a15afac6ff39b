"""Shared fixtures: an isolated Telemetry handle with in-memory sinks."""

from typing import Dict

import pytest
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from relaytrace.processors import InMemorySpanRecorder
from relaytrace.tracer import Telemetry


@pytest.fixture
def metric_reader():
    return InMemoryMetricReader()


@pytest.fixture
def telemetry(metric_reader):
    handle = Telemetry({"service.name": "relaytrace-test"}, metric_readers=[metric_reader])
    yield handle
    handle.shutdown()


@pytest.fixture
def recorder(telemetry):
    span_recorder = InMemorySpanRecorder()
    telemetry.add_span_processor(span_recorder)
    return span_recorder


def _metric_totals(reader: InMemoryMetricReader) -> Dict[str, int]:
    """Sum every data point per metric name."""
    totals: Dict[str, int] = {}
    data = reader.get_metrics_data()
    if data is None:
        return totals
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                totals[metric.name] = totals.get(metric.name, 0) + sum(
                    point.value for point in metric.data.data_points
                )
    return totals


@pytest.fixture
def metric_totals(metric_reader):
    return lambda: _metric_totals(metric_reader)
