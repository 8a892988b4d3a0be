"""Tenant liveness middleware.

Confirms that the tenant in the call context exists and is not
soft-deleted, and resolves the store key the session binding stage needs.

Identifier mapping: the context carries the tenant's external UUID (the
``X-Tenant-Id`` value). The store is keyed by an integer primary key. The
mapping goes through the store's external-id index; the header value is
never used as the primary key directly.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from shared_kernel.call_context import ContextSlot, call_context
from shared_kernel.middleware.errors import error_response
from shared_kernel.middleware.exceptions import (
    InvalidTenantIdentifierError,
    TenantDeletedError,
    TenantNotFoundError,
)
from shared_kernel.middleware.observability import (
    DefaultTenantPipelineProbe,
    TenantPipelineProbe,
)

# request.state attribute carrying the resolved store key
TENANT_KEY_STATE = "tenant_key"


class LiveTenant(Protocol):
    """What the liveness check needs to know about a tenant record."""

    @property
    def id(self) -> int: ...

    @property
    def is_deleted(self) -> bool: ...


class TenantStore(Protocol):
    """Read side of the tenant registry used by the liveness check."""

    async def resolve_key(self, external_id: uuid.UUID) -> int | None:
        """Map an external tenant UUID to its store key, or None if unknown."""
        ...

    async def find_active_by_id(self, key: int) -> LiveTenant | None:
        """Return the tenant with ``key`` whose deletion timestamp is null."""
        ...


TenantStoreScope = Callable[[], AbstractAsyncContextManager[TenantStore]]


def parse_tenant_identifier(tenant_id: str) -> uuid.UUID:
    """Convert the context's tenant id to the external-id representation.

    Raises:
        InvalidTenantIdentifierError: If ``tenant_id`` is not a UUID.
    """
    try:
        return uuid.UUID(tenant_id)
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidTenantIdentifierError(
            "The tenant identifier is not a valid tenant reference."
        ) from e


async def verify_tenant(store: TenantStore, tenant_id: str) -> int:
    """Map ``tenant_id`` to its store key and confirm the tenant is live.

    Returns:
        The tenant's store key.

    Raises:
        InvalidTenantIdentifierError: If the id cannot be converted.
        TenantNotFoundError: If no active tenant matches.
        TenantDeletedError: If the store returns a soft-deleted tenant.
    """
    external_id = parse_tenant_identifier(tenant_id)

    key = await store.resolve_key(external_id)
    tenant = await store.find_active_by_id(key) if key is not None else None

    if tenant is None:
        raise TenantNotFoundError(
            "The tenant associated with this request does not exist or has been deleted."
        )

    # The active query already filters on deleted_at; keep the check in
    # case a store implementation does not.
    if tenant.is_deleted:
        raise TenantDeletedError(
            "The tenant associated with this request has been deleted.",
            tenant_key=tenant.id,
        )

    return tenant.id


class TenantLivenessMiddleware(BaseHTTPMiddleware):
    """Third pipeline stage: tenant exists and is not soft-deleted."""

    def __init__(
        self,
        app: ASGIApp,
        store_scope: TenantStoreScope,
        probe: TenantPipelineProbe | None = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: Downstream ASGI app.
            store_scope: Opens a tenant store for the duration of one lookup.
            probe: Optional observability probe.
        """
        super().__init__(app)
        self._store_scope = store_scope
        self._probe = probe or DefaultTenantPipelineProbe()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        tenant_id = call_context.get(ContextSlot.TENANT_ID)
        if tenant_id is None:
            self._probe.liveness_skipped(path=request.url.path)
            return await call_next(request)

        try:
            async with self._store_scope() as store:
                tenant_key = await verify_tenant(store, tenant_id)
        except InvalidTenantIdentifierError as e:
            self._probe.invalid_tenant_identifier(tenant_id=tenant_id)
            return error_response(request, e.error_type, e.detail)
        except TenantNotFoundError as e:
            self._probe.tenant_not_found(tenant_id=tenant_id)
            return error_response(request, e.error_type, e.detail)
        except TenantDeletedError as e:
            self._probe.tenant_deleted(tenant_id=tenant_id, tenant_key=e.tenant_key)
            return error_response(request, e.error_type, e.detail)

        self._probe.tenant_verified(tenant_id=tenant_id, tenant_key=tenant_key)
        setattr(request.state, TENANT_KEY_STATE, tenant_key)
        return await call_next(request)
