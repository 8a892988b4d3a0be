"""Value objects for the tenancy bounded context."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class TenantType(StrEnum):
    """Kind of organization a tenant represents."""

    ORGANIZATION = "organization"
    INDIVIDUAL = "individual"
    PARTNER = "partner"


@dataclass(frozen=True)
class TenantSettings:
    """Per-tenant settings stored as a JSON document.

    Attributes:
        constraints: Configuration constraints applied to the tenant.
        features: Features enabled for the tenant.
    """

    constraints: tuple[str, ...] = ()
    features: tuple[str, ...] = ()

    @classmethod
    def from_document(cls, document: dict[str, Any] | None) -> TenantSettings:
        """Build settings from the stored JSON document."""
        document = document or {}
        return cls(
            constraints=tuple(document.get("constraints") or ()),
            features=tuple(document.get("features") or ()),
        )

    def to_document(self) -> dict[str, list[str]]:
        """Render the settings as a JSON-serializable document."""
        return {
            "constraints": list(self.constraints),
            "features": list(self.features),
        }


@dataclass(frozen=True)
class NewTenant:
    """Data required to register a tenant."""

    name: str
    display_name: str
    domain: str
    type: TenantType = TenantType.ORGANIZATION
    settings: TenantSettings = field(default_factory=TenantSettings)


@dataclass(frozen=True)
class TenantRecord:
    """A tenant as stored in the registry.

    ``id`` is the store key used for row-level isolation; ``external_id`` is
    the identifier clients send in the tenant header.
    """

    id: int
    external_id: uuid.UUID
    name: str
    display_name: str
    domain: str
    type: TenantType
    settings: TenantSettings
    created_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        """Whether the tenant has been soft-deleted."""
        return self.deleted_at is not None
