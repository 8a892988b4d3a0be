"""Tenant application service for the tenancy bounded context."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from tenancy.application.observability import (
    DefaultTenantServiceProbe,
    TenantServiceProbe,
)
from tenancy.domain.value_objects import NewTenant, TenantRecord
from tenancy.ports.exceptions import DuplicateTenantError
from tenancy.ports.repositories import ITenantRepository


class TenantService:
    """Application service for tenant registration and lookup."""

    def __init__(
        self,
        tenant_repository: ITenantRepository,
        session: AsyncSession,
        probe: TenantServiceProbe | None = None,
    ):
        """Initialize TenantService with dependencies.

        Args:
            tenant_repository: Repository for tenant persistence
            session: Database session for transaction management
            probe: Optional domain probe for observability
        """
        self._tenant_repository = tenant_repository
        self._session = session
        self._probe = probe or DefaultTenantServiceProbe()

    async def create_tenant(self, tenant: NewTenant) -> TenantRecord:
        """Register a tenant in its own transaction.

        Args:
            tenant: The tenant data to persist

        Returns:
            The stored tenant

        Raises:
            DuplicateTenantError: If the display name or domain is taken
        """
        try:
            async with self._session.begin():
                record = await self._tenant_repository.create(tenant)
        except DuplicateTenantError as e:
            self._probe.tenant_rejected_duplicate(field=e.field)
            raise

        self._probe.tenant_created(
            tenant_key=record.id,
            external_id=str(record.external_id),
            name=record.name,
        )
        return record

    async def get_current_tenant(self, tenant_key: int) -> TenantRecord | None:
        """Read the calling tenant through the caller's session.

        The session is expected to be bound to ``tenant_key``; the caller
        owns its transaction.
        """
        return await self._tenant_repository.find_active_by_id(tenant_key)
