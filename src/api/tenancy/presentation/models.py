"""Request and response models for tenant API endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from tenancy.domain.value_objects import (
    NewTenant,
    TenantRecord,
    TenantSettings,
    TenantType,
)


class TenantSettingsModel(BaseModel):
    """Tenant settings document."""

    constraints: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, settings: TenantSettings) -> TenantSettingsModel:
        return cls(
            constraints=list(settings.constraints),
            features=list(settings.features),
        )


class CreateTenantRequest(BaseModel):
    """Request to register a tenant.

    Attributes:
        name: Tenant name
        display_name: Globally unique display name
        domain: Globally unique domain
        type: Kind of tenant
        settings: Optional settings document
    """

    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=255)
    domain: str = Field(..., min_length=1, max_length=255)
    type: TenantType = TenantType.ORGANIZATION
    settings: TenantSettingsModel = Field(default_factory=TenantSettingsModel)

    @field_validator("name", "display_name", "domain")
    @classmethod
    def reject_blank(cls, value: str) -> str:
        """Strip surrounding whitespace and reject blank values."""
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    def to_domain(self) -> NewTenant:
        """Convert to the domain representation."""
        return NewTenant(
            name=self.name,
            display_name=self.display_name,
            domain=self.domain,
            type=self.type,
            settings=TenantSettings(
                constraints=tuple(self.settings.constraints),
                features=tuple(self.settings.features),
            ),
        )


class TenantResponse(BaseModel):
    """Response containing tenant details.

    ``external_id`` is the value to send in the ``X-Tenant-Id`` header.
    """

    external_id: UUID
    name: str
    display_name: str
    domain: str
    type: TenantType
    settings: TenantSettingsModel
    created_at: datetime

    @classmethod
    def from_domain(cls, tenant: TenantRecord) -> TenantResponse:
        """Convert domain TenantRecord to API response."""
        return cls(
            external_id=tenant.external_id,
            name=tenant.name,
            display_name=tenant.display_name,
            domain=tenant.domain,
            type=tenant.type,
            settings=TenantSettingsModel.from_domain(tenant.settings),
            created_at=tenant.created_at,
        )
