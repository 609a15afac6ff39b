"""Exporters for delivering spans and metrics to a collector."""

from relaytrace.exporter.otlp_exporter import build_metric_reader, build_span_processor

__all__ = ["build_metric_reader", "build_span_processor"]
