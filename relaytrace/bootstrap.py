"""Process bootstrap: build the observability handle from configuration."""

from __future__ import annotations

import logging
from typing import List, Optional

from opentelemetry.sdk.metrics.export import MetricReader

from relaytrace.config import RelaytraceConfig
from relaytrace.exporter import build_metric_reader, build_span_processor
from relaytrace.processors import LoggingSpanProcessor
from relaytrace.tracer.provider import Telemetry

logger = logging.getLogger(__name__)


def build_telemetry(
    config: RelaytraceConfig,
    role: Optional[str] = None,
    metric_readers: Optional[List[MetricReader]] = None,
) -> Telemetry:
    """
    Create the process's Telemetry handle.

    Exporters are only attached when an OTLP endpoint is configured; the
    logging processor only when console output is enabled.
    """
    telemetry_config = config.telemetry
    service_name = telemetry_config.service_name
    if role:
        service_name = f"{service_name}-{role}"

    readers = list(metric_readers or [])
    endpoint = telemetry_config.otlp_endpoint
    if endpoint and telemetry_config.metrics_enabled:
        readers.append(build_metric_reader(endpoint, telemetry_config.metrics_export_interval_ms))

    telemetry = Telemetry(
        {"service.name": service_name},
        metric_readers=readers,
        metrics_enabled=telemetry_config.metrics_enabled,
        propagation_enabled=telemetry_config.propagation_enabled,
    )

    if endpoint:
        logger.info("Exporting telemetry for %s to %s", service_name, endpoint)
        telemetry.add_span_processor(build_span_processor(endpoint))
    if telemetry_config.enable_console:
        telemetry.add_span_processor(LoggingSpanProcessor())
    return telemetry
