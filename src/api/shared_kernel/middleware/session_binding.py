"""Session binding middleware.

Last pipeline stage. For calls with a tenant in context, opens a database
session whose connection carries the tenant isolation variable and exposes
it to handlers as ``request.state.tenant_session``. The binder guarantees the
variable is cleared (or the connection discarded) before the connection goes
back to the pool, whatever the outcome of the call.

The session is released once the downstream app has produced its response.
Streaming response bodies that read from the session after that point are
not supported.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from infrastructure.database.exceptions import IsolationBindingError
from infrastructure.database.tenant_session import SessionBinder
from shared_kernel.call_context import ContextSlot, call_context
from shared_kernel.middleware.errors import ApiErrorType, error_response
from shared_kernel.middleware.observability import (
    DefaultTenantPipelineProbe,
    TenantPipelineProbe,
)
from shared_kernel.middleware.tenant_liveness import TENANT_KEY_STATE

# request.state attribute carrying the tenant-bound session
TENANT_SESSION_STATE = "tenant_session"

_BINDING_FAILED_DETAIL = (
    "Tenant isolation could not be established for this request. "
    "Please retry later."
)


class SessionBindingMiddleware(BaseHTTPMiddleware):
    """Fourth pipeline stage: scoped tenant binding of the database session."""

    def __init__(
        self,
        app: ASGIApp,
        binder: SessionBinder,
        probe: TenantPipelineProbe | None = None,
    ) -> None:
        super().__init__(app)
        self._binder = binder
        self._probe = probe or DefaultTenantPipelineProbe()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        tenant_id = call_context.get(ContextSlot.TENANT_ID)
        if tenant_id is None:
            return await call_next(request)

        tenant_key = getattr(request.state, TENANT_KEY_STATE, None)
        if tenant_key is None:
            self._probe.tenant_key_unresolved(tenant_id=tenant_id)
            return error_response(
                request, ApiErrorType.ISOLATION_BINDING_FAILED, _BINDING_FAILED_DETAIL
            )

        try:
            async with self._binder.bound_session(str(tenant_key)) as session:
                setattr(request.state, TENANT_SESSION_STATE, session)
                return await call_next(request)
        except IsolationBindingError as e:
            self._probe.isolation_binding_rejected(tenant_id=tenant_id, error=e)
            return error_response(
                request, ApiErrorType.ISOLATION_BINDING_FAILED, _BINDING_FAILED_DETAIL
            )
