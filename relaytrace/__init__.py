"""relaytrace: W3C trace-context propagation across a two-hop request chain."""

from relaytrace.config import RelaytraceConfig, load_config
from relaytrace.context import Context, decode, encode
from relaytrace.errors import ConfigError, MalformedContext, RelaytraceError, TransportError
from relaytrace.tracer import Span, SpanStatus, Telemetry, TraceContext, Tracer

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Context",
    "ConfigError",
    "MalformedContext",
    "RelaytraceConfig",
    "RelaytraceError",
    "Span",
    "SpanStatus",
    "Telemetry",
    "TraceContext",
    "Tracer",
    "TransportError",
    "decode",
    "encode",
    "load_config",
]
