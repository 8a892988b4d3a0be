"""SQLAlchemy ORM model for the tenants table.

Tenants are the top-level isolation boundary. Each tenant has two
identifiers: an integer store key (``id``), which row-level security
policies compare against the isolation variable, and a UUID
(``external_id``), which clients send in the tenant header.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON, BigInteger, Integer, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import (
    Base,
    RequestTrackingMixin,
    SoftDeleteMixin,
    TimestampMixin,
)

# SQLite only auto-increments INTEGER PRIMARY KEY columns
_TENANT_KEY_TYPE = BigInteger().with_variant(Integer(), "sqlite")
_SETTINGS_TYPE = JSON().with_variant(JSONB(), "postgresql")


class TenantModel(Base, TimestampMixin, RequestTrackingMixin, SoftDeleteMixin):
    """ORM model for tenants table.

    Note: display names and domains are globally unique, including
    soft-deleted tenants.
    """

    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(_TENANT_KEY_TYPE, primary_key=True, autoincrement=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        unique=True,
        index=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True
    )
    domain: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    settings: Mapped[dict[str, Any] | None] = mapped_column(_SETTINGS_TYPE, nullable=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<TenantModel(id={self.id}, external_id={self.external_id}, name={self.name})>"
