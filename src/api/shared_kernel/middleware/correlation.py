"""Correlation id middleware.

Assigns every HTTP call a correlation id: the inbound ``X-Request-ID`` when
it is a valid UUID, a fresh uuid4 otherwise. The id is entered into the call
context for logging and error envelopes, and written onto every response
that passes through, including rejections produced by later stages.

An exception escaping the rest of the app is answered here with a 500
``internal-error`` envelope carrying the id (unless a response has already
started) and then re-raised, so the server still logs the traceback.

This stage never rejects a call.
"""

from __future__ import annotations

import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from shared_kernel.call_context import ContextSlot, call_context
from shared_kernel.middleware.errors import ApiErrorType, error_response
from shared_kernel.middleware.observability import (
    DefaultTenantPipelineProbe,
    TenantPipelineProbe,
)


def resolve_correlation_id(raw_value: str | None) -> str:
    """Return ``raw_value`` if it is a valid UUID, else a new uuid4 string."""
    if raw_value is not None:
        candidate = raw_value.strip()
        if candidate:
            try:
                uuid.UUID(candidate)
            except ValueError:
                pass
            else:
                return candidate
    return str(uuid.uuid4())


class CorrelationMiddleware:
    """Pure ASGI middleware so the header is added at ``http.response.start``."""

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "X-Request-ID",
        probe: TenantPipelineProbe | None = None,
    ) -> None:
        self.app = app
        self._header_name = header_name
        self._probe = probe or DefaultTenantPipelineProbe()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        supplied = Headers(scope=scope).get(self._header_name)
        correlation_id = resolve_correlation_id(supplied)

        response_started = False

        async def send_with_correlation_id(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                headers[self._header_name] = correlation_id
            await send(message)

        with call_context.scoped(ContextSlot.CORRELATION_ID, correlation_id):
            if supplied is None or correlation_id != supplied.strip():
                self._probe.correlation_id_generated(supplied=supplied)
            try:
                await self.app(scope, receive, send_with_correlation_id)
            except Exception as e:
                self._probe.unhandled_error(path=scope["path"], error=e)
                if not response_started:
                    response = error_response(
                        Request(scope),
                        ApiErrorType.INTERNAL_ERROR,
                        "An unexpected error occurred while processing the request.",
                    )
                    await response(scope, receive, send_with_correlation_id)
                raise
