"""Unit test fixtures with mocked dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest

from shared_kernel.call_context import ContextSlot, call_context

TENANT_UUID = "3fa85f64-5717-4562-b3fc-2c963f66afa6"
TENANT_KEY = 42


@pytest.fixture(autouse=True)
def _isolated_call_context():
    """Start every test with an empty call context and restore it afterwards."""
    with call_context.scoped(ContextSlot.CORRELATION_ID, None):
        with call_context.scoped(ContextSlot.TENANT_ID, None):
            yield


@pytest.fixture
def tenancy_settings():
    """Provide default tenancy settings independent of the environment."""
    from infrastructure.settings import TenancySettings

    return TenancySettings(
        tenant_header="X-Tenant-Id",
        correlation_header="X-Request-ID",
        exempt_path_prefixes=["/health", "/api/v1/health"],
        tenant_creation_path_pattern=r"^/api/v\d+/tenants/?$",
        isolation_variable="app.current_tenant_id",
        binding_mode="transaction",
    )


@pytest.fixture
def mock_pipeline_probe() -> MagicMock:
    """Probe that records pipeline events."""
    from shared_kernel.middleware.observability import TenantPipelineProbe

    return MagicMock(spec=TenantPipelineProbe)


class FakeTenant:
    """Minimal tenant record for liveness checks."""

    def __init__(self, key: int, deleted_at: datetime | None = None) -> None:
        self.id = key
        self.deleted_at = deleted_at

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class FakeTenantStore:
    """In-memory tenant store keyed by external UUID string.

    ``active_only`` mimics the store's deleted_at filter; turn it off to
    simulate a store that returns soft-deleted rows.
    """

    def __init__(self, active_only: bool = True) -> None:
        self._keys: dict[str, int] = {}
        self._tenants: dict[int, FakeTenant] = {}
        self.active_only = active_only
        self.lookups: list[Any] = []

    def add(self, external_id: str, key: int, deleted: bool = False) -> None:
        self._keys[external_id] = key
        self._tenants[key] = FakeTenant(
            key, deleted_at=datetime.now(timezone.utc) if deleted else None
        )

    async def resolve_key(self, external_id):
        self.lookups.append(external_id)
        return self._keys.get(str(external_id))

    async def find_active_by_id(self, key: int):
        tenant = self._tenants.get(key)
        if tenant is None:
            return None
        if self.active_only and tenant.is_deleted:
            return None
        return tenant

    def scope(self):
        @asynccontextmanager
        async def _scope() -> AsyncIterator[FakeTenantStore]:
            yield self

        return _scope


@pytest.fixture
def make_tenant_store():
    """Factory for empty in-memory tenant stores."""
    return FakeTenantStore


@pytest.fixture
def tenant_store() -> FakeTenantStore:
    """Store containing the live tenant TENANT_UUID -> TENANT_KEY."""
    store = FakeTenantStore()
    store.add(TENANT_UUID, TENANT_KEY)
    return store
