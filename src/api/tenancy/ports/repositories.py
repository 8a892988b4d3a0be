"""Repository protocols (ports) for the tenancy bounded context."""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from tenancy.domain.value_objects import NewTenant, TenantRecord


@runtime_checkable
class ITenantRepository(Protocol):
    """Repository for tenant registry persistence.

    Read paths treat soft-deleted tenants as absent.
    """

    async def create(self, tenant: NewTenant) -> TenantRecord:
        """Register a new tenant.

        Args:
            tenant: The tenant data to persist

        Returns:
            The stored tenant, including its store key and external id

        Raises:
            DuplicateTenantError: If the display name or domain is taken
        """
        ...

    async def resolve_key(self, external_id: uuid.UUID) -> int | None:
        """Map an external tenant id to its store key.

        Args:
            external_id: The tenant UUID carried by the tenant header

        Returns:
            The store key, or None if no tenant has that external id
        """
        ...

    async def find_active_by_id(self, key: int) -> TenantRecord | None:
        """Fetch a tenant that has not been soft-deleted.

        Args:
            key: The tenant's store key

        Returns:
            The tenant, or None if it does not exist or is soft-deleted
        """
        ...
