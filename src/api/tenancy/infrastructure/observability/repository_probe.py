"""Domain probe for tenant repository operations.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events related to tenant registry persistence.
"""

from __future__ import annotations

from typing import Protocol

import structlog


class TenantRepositoryProbe(Protocol):
    """Domain probe for tenant repository operations."""

    def tenant_created(self, tenant_key: int, external_id: str) -> None:
        """Record that a tenant was registered."""
        ...

    def duplicate_tenant(self, field: str, value: str) -> None:
        """Record that a unique tenant attribute was already taken."""
        ...

    def tenant_key_resolved(self, external_id: str, tenant_key: int) -> None:
        """Record that an external id was mapped to its store key."""
        ...

    def external_id_unknown(self, external_id: str) -> None:
        """Record that no tenant has the given external id."""
        ...

    def tenant_retrieved(self, tenant_key: int) -> None:
        """Record that an active tenant was retrieved."""
        ...

    def tenant_not_found(self, tenant_key: int) -> None:
        """Record that no active tenant has the given store key."""
        ...


class DefaultTenantRepositoryProbe:
    """Default implementation of TenantRepositoryProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self._logger = logger or structlog.get_logger()

    def tenant_created(self, tenant_key: int, external_id: str) -> None:
        """Record that a tenant was registered."""
        self._logger.info(
            "tenant_created",
            tenant_key=tenant_key,
            external_id=external_id,
        )

    def duplicate_tenant(self, field: str, value: str) -> None:
        """Record that a unique tenant attribute was already taken."""
        self._logger.warning(
            "duplicate_tenant",
            field=field,
            value=value,
        )

    def tenant_key_resolved(self, external_id: str, tenant_key: int) -> None:
        """Record that an external id was mapped to its store key."""
        self._logger.debug(
            "tenant_key_resolved",
            external_id=external_id,
            tenant_key=tenant_key,
        )

    def external_id_unknown(self, external_id: str) -> None:
        """Record that no tenant has the given external id."""
        self._logger.debug(
            "tenant_external_id_unknown",
            external_id=external_id,
        )

    def tenant_retrieved(self, tenant_key: int) -> None:
        """Record that an active tenant was retrieved."""
        self._logger.debug(
            "tenant_retrieved",
            tenant_key=tenant_key,
        )

    def tenant_not_found(self, tenant_key: int) -> None:
        """Record that no active tenant has the given store key."""
        self._logger.debug(
            "tenant_not_found",
            tenant_key=tenant_key,
        )
