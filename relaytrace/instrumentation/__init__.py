"""Instrumentation: propagation relay, handlers and the HTTP app."""

from relaytrace.instrumentation.app import create_app
from relaytrace.instrumentation.handlers import DiceHandler, EntrypointHandler, WorkerHandler
from relaytrace.instrumentation.http_client import PropagationRelay, inject_headers
from relaytrace.instrumentation.http_server import extract_parent_context, start_server_span

__all__ = [
    "create_app",
    "DiceHandler",
    "EntrypointHandler",
    "WorkerHandler",
    "PropagationRelay",
    "inject_headers",
    "extract_parent_context",
    "start_server_span",
]
