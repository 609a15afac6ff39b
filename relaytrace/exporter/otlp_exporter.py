"""OTLP/HTTP span and metric export wiring."""

from __future__ import annotations

from typing import Optional

from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.trace.export import BatchSpanProcessor

TRACES_PATH = "/v1/traces"
METRICS_PATH = "/v1/metrics"


def _signal_endpoint(endpoint: str, path: str) -> str:
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith(path):
        return endpoint
    return endpoint + path


def build_span_processor(
    endpoint: str,
    timeout: float = 10.0,
    headers: Optional[dict] = None,
) -> BatchSpanProcessor:
    """
    OTel batch processor exporting spans to an OTLP/HTTP collector.

    Args:
        endpoint: Collector base URL (``/v1/traces`` is appended if missing)
        timeout: Export request timeout in seconds
        headers: Optional additional headers
    """
    exporter = OTLPSpanExporter(
        endpoint=_signal_endpoint(endpoint, TRACES_PATH),
        timeout=timeout,
        headers=dict(headers) if headers else None,
    )
    return BatchSpanProcessor(exporter)


def build_metric_reader(
    endpoint: str,
    export_interval_ms: int = 5000,
    timeout: float = 10.0,
) -> PeriodicExportingMetricReader:
    """Periodic reader flushing the request counters to an OTLP/HTTP collector."""
    exporter = OTLPMetricExporter(
        endpoint=_signal_endpoint(endpoint, METRICS_PATH),
        timeout=timeout,
    )
    return PeriodicExportingMetricReader(exporter, export_interval_millis=export_interval_ms)
