"""SQLAlchemy declarative base and shared model utilities.

This module provides the declarative base class for all SQLAlchemy ORM models
and the mixins shared by tenant-owned tables: audit timestamps, the
correlation id of the call that created the row, and soft deletion.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from shared_kernel.call_context import ContextSlot, call_context


def _utc_now() -> datetime:
    """Generate UTC timestamp for database defaults.

    Uses a named function instead of lambda for SQLAlchemy 2.0 compatibility.
    Ensures proper INSERT-time evaluation.
    """
    return datetime.now(timezone.utc)


def _current_request_id() -> uuid.UUID | None:
    """Correlation id of the call performing the INSERT, if any."""
    value = call_context.get(ContextSlot.CORRELATION_ID)
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns.

    Uses timezone-aware UTC timestamps with Python-side default generation.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,  # Evaluated at INSERT time
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,  # Evaluated at INSERT time
        onupdate=_utc_now,  # Evaluated at UPDATE time
        nullable=False,
    )


class RequestTrackingMixin:
    """Mixin stamping rows with the correlation id of the creating call."""

    request_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        insert_default=_current_request_id,
        nullable=True,
    )


class SoftDeleteMixin:
    """Mixin providing a nullable deletion timestamp.

    A row with ``deleted_at`` set is logically removed and must be treated
    as absent by every read path.
    """

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )
