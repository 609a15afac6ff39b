"""
FastAPI application exposing the traced routes.
"""

from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from relaytrace.config import RelaytraceConfig
from relaytrace.errors import TransportError
from relaytrace.instrumentation.handlers import (
    ENTRYPOINT_ROUTE,
    RANDNUM_ROUTE,
    WORKER_ROUTE,
    DiceHandler,
    EntrypointHandler,
    WorkerHandler,
)
from relaytrace.instrumentation.http_client import PropagationRelay
from relaytrace.tracer.provider import Telemetry

logger = logging.getLogger(__name__)

ROLES = ("entrypoint", "worker", "all")
UPSTREAM_FAILED_BODY = "upstream request failed"


def create_app(
    config: RelaytraceConfig,
    telemetry: Telemetry,
    *,
    role: str = "all",
    client: Optional[httpx.AsyncClient] = None,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """
    Build the app for one role (or both).

    - ``entrypoint`` serves /entrypoint and relays to the configured worker
    - ``worker`` serves /worker and /randnum
    - ``all`` serves every route in one process

    When no client is given the app creates one with the configured timeout
    and closes it on shutdown.
    """
    if role not in ROLES:
        raise ValueError(f"unknown role {role!r}, expected one of {ROLES}")

    serves_entrypoint = role in ("entrypoint", "all")
    owns_client = client is None and serves_entrypoint
    http_client = client
    if owns_client:
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(config.service.request_timeout_s))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            if owns_client:
                await http_client.aclose()

    app = FastAPI(title="relaytrace", lifespan=lifespan)
    app.state.telemetry = telemetry

    if serves_entrypoint:
        relay = PropagationRelay(telemetry, http_client, hop="entrypoint")
        entrypoint = EntrypointHandler(telemetry, relay, config.service.worker_url)

        @app.get(ENTRYPOINT_ROUTE, response_class=PlainTextResponse)
        async def entrypoint_route() -> PlainTextResponse:
            try:
                value = await entrypoint.handle()
            except TransportError as exc:
                logger.error("Entrypoint request failed: %s", exc)
                return PlainTextResponse(UPSTREAM_FAILED_BODY, status_code=502)
            return PlainTextResponse(str(value))

    if role in ("worker", "all"):
        worker = WorkerHandler(telemetry, rng=rng)
        dice = DiceHandler(telemetry, rng=rng)

        @app.get(WORKER_ROUTE, response_class=PlainTextResponse)
        async def worker_route(request: Request) -> PlainTextResponse:
            return PlainTextResponse(str(worker.handle(request.headers)))

        @app.get(RANDNUM_ROUTE, response_class=PlainTextResponse)
        async def randnum_route(request: Request) -> PlainTextResponse:
            return PlainTextResponse(str(dice.handle(request.headers)))

    return app
