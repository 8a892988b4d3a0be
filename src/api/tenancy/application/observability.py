"""Protocol for tenant application service observability.

Defines the interface for domain probes that capture application-level
domain events for tenant service operations.
"""

from __future__ import annotations

from typing import Protocol

import structlog


class TenantServiceProbe(Protocol):
    """Domain probe for tenant application service operations."""

    def tenant_created(self, tenant_key: int, external_id: str, name: str) -> None:
        """Record that a tenant was created."""
        ...

    def tenant_rejected_duplicate(self, field: str) -> None:
        """Record that tenant creation was rejected as a duplicate."""
        ...


class DefaultTenantServiceProbe:
    """Default implementation of TenantServiceProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self._logger = logger or structlog.get_logger()

    def tenant_created(self, tenant_key: int, external_id: str, name: str) -> None:
        """Record that a tenant was created."""
        self._logger.info(
            "tenant_registration_completed",
            tenant_key=tenant_key,
            external_id=external_id,
            name=name,
        )

    def tenant_rejected_duplicate(self, field: str) -> None:
        """Record that tenant creation was rejected as a duplicate."""
        self._logger.warning(
            "tenant_registration_rejected",
            reason="duplicate",
            field=field,
        )
