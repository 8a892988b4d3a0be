"""Registration of the tenant isolation pipeline."""

from __future__ import annotations

from fastapi import FastAPI

from infrastructure.database.tenant_session import SessionBinder
from infrastructure.settings import TenancySettings
from shared_kernel.middleware.correlation import CorrelationMiddleware
from shared_kernel.middleware.observability import (
    DefaultTenantPipelineProbe,
    TenantPipelineProbe,
)
from shared_kernel.middleware.session_binding import SessionBindingMiddleware
from shared_kernel.middleware.tenant_identity import TenantIdentityMiddleware
from shared_kernel.middleware.tenant_liveness import (
    TenantLivenessMiddleware,
    TenantStoreScope,
)


def install_tenant_pipeline(
    app: FastAPI,
    *,
    settings: TenancySettings,
    store_scope: TenantStoreScope,
    binder: SessionBinder,
    probe: TenantPipelineProbe | None = None,
) -> None:
    """Register the four pipeline stages on ``app``.

    Calls pass through correlation, tenant identity, tenant liveness and
    session binding in that order. Starlette wraps each newly added
    middleware around the ones already registered, so the stages are
    added innermost first.

    Args:
        app: The FastAPI application.
        settings: Tenancy settings (header names, exemptions).
        store_scope: Opens a tenant store for liveness lookups.
        binder: Opens tenant-bound database sessions.
        probe: Optional probe shared by all stages.
    """
    probe = probe or DefaultTenantPipelineProbe()

    app.add_middleware(SessionBindingMiddleware, binder=binder, probe=probe)
    app.add_middleware(TenantLivenessMiddleware, store_scope=store_scope, probe=probe)
    app.add_middleware(TenantIdentityMiddleware, settings=settings, probe=probe)
    app.add_middleware(
        CorrelationMiddleware,
        header_name=settings.correlation_header,
        probe=probe,
    )
