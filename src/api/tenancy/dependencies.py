"""Dependency wiring for the tenancy bounded context.

Two kinds of providers live here: FastAPI dependencies for route handlers,
and the plain factories the tenant pipeline is installed with (middleware
runs before dependency resolution and cannot use ``Depends``).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.dependencies import (
    get_write_engine,
    get_write_session,
    read_session_scope,
)
from infrastructure.database.isolation import PostgresIsolationPrimitive
from infrastructure.database.tenant_session import TenantSessionBinder
from infrastructure.settings import get_tenancy_settings
from shared_kernel.middleware.session_binding import TENANT_SESSION_STATE
from shared_kernel.middleware.tenant_liveness import TENANT_KEY_STATE
from tenancy.application.services import TenantService
from tenancy.infrastructure.tenant_repository import TenantRepository


@asynccontextmanager
async def tenant_store_scope() -> AsyncIterator[TenantRepository]:
    """Open a tenant store on a short-lived read session.

    Used by the liveness check for each tenant-bearing call.
    """
    async with read_session_scope() as session:
        yield TenantRepository(session=session)


@lru_cache
def get_tenant_session_binder() -> TenantSessionBinder:
    """Get the process-wide session binder.

    Engines are resolved per call, so the binder stays valid after the
    engines are disposed and recreated.
    """
    isolation = PostgresIsolationPrimitive.from_settings(get_tenancy_settings())
    return TenantSessionBinder(engine_provider=get_write_engine, isolation=isolation)


def get_tenant_session(request: Request) -> AsyncSession:
    """Get the tenant-bound session attached by the session binding middleware.

    Raises:
        RuntimeError: If the call carries no tenant binding (exempt path or
            pipeline not installed).
    """
    session = getattr(request.state, TENANT_SESSION_STATE, None)
    if session is None:
        raise RuntimeError("No tenant-bound session is attached to this request")
    return session


def get_tenant_key(request: Request) -> int:
    """Get the store key of the calling tenant."""
    key = getattr(request.state, TENANT_KEY_STATE, None)
    if key is None:
        raise RuntimeError("No tenant key is attached to this request")
    return key


def get_tenant_repository(
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> TenantRepository:
    """Get TenantRepository for tenant-less writes (registration)."""
    return TenantRepository(session=session)


def get_tenant_service(
    tenant_repository: Annotated[TenantRepository, Depends(get_tenant_repository)],
    session: Annotated[AsyncSession, Depends(get_write_session)],
) -> TenantService:
    """Get TenantService for tenant registration."""
    return TenantService(tenant_repository=tenant_repository, session=session)


def get_bound_tenant_service(
    session: Annotated[AsyncSession, Depends(get_tenant_session)],
) -> TenantService:
    """Get TenantService running on the tenant-bound session."""
    return TenantService(
        tenant_repository=TenantRepository(session=session),
        session=session,
    )
