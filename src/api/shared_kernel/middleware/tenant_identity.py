"""Tenant identity middleware.

Validates the ``X-Tenant-Id`` header and enters the tenant id into the call
context for the rest of the call. Health/monitoring paths and tenant
creation are exempt and pass through untouched.

The header carries the tenant's external UUID, not the store's primary key;
the liveness stage maps one to the other.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from infrastructure.settings import TenancySettings
from shared_kernel.call_context import ContextSlot, call_context
from shared_kernel.middleware.errors import error_response
from shared_kernel.middleware.exceptions import (
    InvalidTenantHeaderError,
    MissingTenantHeaderError,
    TenantPipelineError,
)
from shared_kernel.middleware.exemptions import ExemptionPolicy
from shared_kernel.middleware.observability import (
    DefaultTenantPipelineProbe,
    TenantPipelineProbe,
)


def validate_tenant_header(raw_value: str | None, header_name: str) -> str:
    """Validate the raw header and return the canonical tenant id.

    Args:
        raw_value: The header value, or None if the header is absent.
        header_name: Header name, used in error details.

    Returns:
        The tenant id as a canonical lowercase UUID string.

    Raises:
        MissingTenantHeaderError: If the header is absent or blank.
        InvalidTenantHeaderError: If the header is not a valid UUID.
    """
    if raw_value is None or not raw_value.strip():
        raise MissingTenantHeaderError(
            f"The request is missing the required '{header_name}' header."
        )

    try:
        return str(uuid.UUID(raw_value.strip()))
    except ValueError as e:
        raise InvalidTenantHeaderError(
            f"The '{header_name}' header must be a valid UUID."
        ) from e


class TenantIdentityMiddleware(BaseHTTPMiddleware):
    """Second pipeline stage: tenant header presence and format."""

    def __init__(
        self,
        app: ASGIApp,
        settings: TenancySettings,
        probe: TenantPipelineProbe | None = None,
    ) -> None:
        super().__init__(app)
        self._header_name = settings.tenant_header
        self._exemptions = ExemptionPolicy.from_settings(settings)
        self._probe = probe or DefaultTenantPipelineProbe()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if self._exemptions.is_exempt(path, request.method):
            self._probe.tenant_check_exempt(path=path, method=request.method)
            return await call_next(request)

        raw_value = request.headers.get(self._header_name)
        try:
            tenant_id = validate_tenant_header(raw_value, self._header_name)
        except MissingTenantHeaderError as e:
            self._probe.tenant_header_missing(path=path)
            return error_response(request, e.error_type, e.detail)
        except TenantPipelineError as e:
            self._probe.invalid_tenant_header(raw_value=raw_value or "", path=path)
            return error_response(request, e.error_type, e.detail)

        with call_context.scoped(ContextSlot.TENANT_ID, tenant_id):
            self._probe.tenant_identified(tenant_id=tenant_id)
            return await call_next(request)
