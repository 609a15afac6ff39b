"""HTTP client side of context propagation: the propagation relay."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx

from relaytrace.context.context import Context
from relaytrace.context.propagators import inject
from relaytrace.errors import TransportError
from relaytrace.tracer.provider import Telemetry
from relaytrace.tracer.span import SpanStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECEIVED_RESPONSE = "received response"
REQUEST_FAILED = "request failed"


def inject_headers(headers: httpx.Headers, context: Context) -> httpx.Headers:
    """
    Merge the encoded trace context into outbound headers.

    Returns the same headers mapping for convenience.
    """
    inject(headers, context.trace)
    return headers


class PropagationRelay:
    """
    Sends one outbound request on behalf of a traced caller.

    The caller's Context is encoded into the request headers, the request is
    dispatched through the supplied httpx client, and the outcome is recorded
    on the caller's span and in the request counters. Nothing is memoized:
    every call is an independent request with its own counter increment.
    """

    def __init__(
        self,
        telemetry: Telemetry,
        client: httpx.AsyncClient,
        *,
        hop: str = "entrypoint",
        propagate: Optional[bool] = None,
    ) -> None:
        self.telemetry = telemetry
        self.client = client
        self.hop = hop
        self.propagate = telemetry.propagation_enabled if propagate is None else propagate

    async def send_with_context(
        self,
        context: Context,
        request_builder: Callable[[], httpx.Request],
        decode: Optional[Callable[[httpx.Response], T]] = None,
    ) -> Any:
        """
        Send the request built by ``request_builder`` carrying ``context``.

        Returns the response, or ``decode(response)`` when a decoder is
        given. Raises TransportError on invalid URLs, network errors,
        non-2xx statuses or bodies the decoder rejects.
        """
        try:
            # Building the request can fail too (httpx.InvalidURL)
            request = request_builder()
            if self.propagate:
                inject_headers(request.headers, context)
            response = await self.client.send(request)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            reason = f"{type(exc).__name__}: {exc}"
            self._record_failure(context, reason)
            raise TransportError(f"request failed: {reason}") from exc

        if not response.is_success:
            reason = f"unexpected status {response.status_code}"
            self._record_failure(context, reason, response.status_code)
            raise TransportError(reason, status_code=response.status_code)

        result: Any = response
        if decode is not None:
            try:
                result = decode(response)
            except (ValueError, UnicodeDecodeError) as exc:
                reason = f"undecodable response body: {exc}"
                self._record_failure(context, reason, response.status_code)
                raise TransportError(reason, status_code=response.status_code) from exc

        if context.span is not None:
            context.span.add_event(RECEIVED_RESPONSE, {"http.status_code": response.status_code})
        self.telemetry.counters.record_success(self.hop)
        return result

    def _record_failure(self, context: Context, reason: str, status_code: Optional[int] = None) -> None:
        logger.warning("Outbound request from %s failed: %s", self.hop, reason)
        span = context.span
        if span is not None:
            attributes = {"error.reason": reason}
            if status_code is not None:
                attributes["http.status_code"] = status_code
            span.add_event(REQUEST_FAILED, attributes)
            span.set_status(SpanStatus.ERROR, reason)
        self.telemetry.counters.record_failure(self.hop)
