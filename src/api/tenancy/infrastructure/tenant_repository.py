"""SQLAlchemy implementation of ITenantRepository.

The repository works on whatever session it is given. The liveness check
runs it on a plain read session (the tenants table is looked up before any
tenant is bound); business logic runs it on the tenant-bound session.
"""

from __future__ import annotations

import uuid

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tenancy.domain.value_objects import (
    NewTenant,
    TenantRecord,
    TenantSettings,
    TenantType,
)
from tenancy.infrastructure.models import TenantModel
from tenancy.infrastructure.observability import (
    DefaultTenantRepositoryProbe,
    TenantRepositoryProbe,
)
from tenancy.ports.exceptions import DuplicateTenantError
from tenancy.ports.repositories import ITenantRepository


class TenantRepository(ITenantRepository):
    """Repository managing storage of the tenant registry."""

    def __init__(
        self,
        session: AsyncSession,
        probe: TenantRepositoryProbe | None = None,
    ) -> None:
        """Initialize repository with a database session.

        Args:
            session: AsyncSession the repository reads and writes through
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultTenantRepositoryProbe()

    async def create(self, tenant: NewTenant) -> TenantRecord:
        """Insert a tenant row and return it with its generated identifiers.

        The caller owns the transaction.

        Raises:
            DuplicateTenantError: If the display name or domain is taken
        """
        await self._check_unique(tenant)

        model = TenantModel(
            external_id=uuid.uuid4(),
            name=tenant.name,
            display_name=tenant.display_name,
            domain=tenant.domain,
            type=tenant.type.value,
            settings=tenant.settings.to_document(),
        )
        self._session.add(model)

        try:
            await self._session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent insert; report which constraint.
            field = _duplicate_field(e)
            if field is None:
                raise
            value = getattr(tenant, field)
            self._probe.duplicate_tenant(field, value)
            raise DuplicateTenantError(
                f"A tenant with {field} '{value}' already exists", field=field
            ) from e

        self._probe.tenant_created(model.id, str(model.external_id))
        return _to_record(model)

    async def resolve_key(self, external_id: uuid.UUID) -> int | None:
        """Map an external tenant id to its store key."""
        stmt = select(TenantModel.id).where(TenantModel.external_id == external_id)
        result = await self._session.execute(stmt)
        key = result.scalar_one_or_none()

        if key is None:
            self._probe.external_id_unknown(str(external_id))
            return None

        self._probe.tenant_key_resolved(str(external_id), key)
        return key

    async def find_active_by_id(self, key: int) -> TenantRecord | None:
        """Fetch a tenant by store key, ignoring soft-deleted rows."""
        stmt = select(TenantModel).where(
            TenantModel.id == key,
            TenantModel.deleted_at.is_(None),
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            self._probe.tenant_not_found(key)
            return None

        self._probe.tenant_retrieved(key)
        return _to_record(model)

    async def _check_unique(self, tenant: NewTenant) -> None:
        stmt = select(TenantModel.display_name, TenantModel.domain).where(
            or_(
                TenantModel.display_name == tenant.display_name,
                TenantModel.domain == tenant.domain,
            )
        )
        result = await self._session.execute(stmt)
        for display_name, domain in result.all():
            field = "display_name" if display_name == tenant.display_name else "domain"
            value = getattr(tenant, field)
            self._probe.duplicate_tenant(field, value)
            raise DuplicateTenantError(
                f"A tenant with {field} '{value}' already exists", field=field
            )


def _duplicate_field(error: IntegrityError) -> str | None:
    """Name of the unique tenant attribute an IntegrityError refers to."""
    # The driver message names the constraint (PostgreSQL) or column (SQLite);
    # str(error) would also include the INSERT statement listing every column.
    message = str(error.orig)
    for field in ("display_name", "domain"):
        if field in message:
            return field
    return None


def _to_record(model: TenantModel) -> TenantRecord:
    return TenantRecord(
        id=model.id,
        external_id=model.external_id,
        name=model.name,
        display_name=model.display_name,
        domain=model.domain,
        type=TenantType(model.type),
        settings=TenantSettings.from_document(model.settings),
        created_at=model.created_at,
        deleted_at=model.deleted_at,
    )
