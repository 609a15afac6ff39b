"""Span processors."""

from relaytrace.processors.logging_processor import LoggingSpanProcessor
from relaytrace.processors.recording import InMemorySpanRecorder

__all__ = [
    "LoggingSpanProcessor",
    "InMemorySpanRecorder",
]
