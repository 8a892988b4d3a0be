"""Domain probe for the tenant isolation pipeline.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events of the pipeline stages: correlation id
assignment, tenant header validation, tenant liveness and session binding.
Correlation and tenant ids are attached to every event by the logging
configuration.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import Protocol

import structlog


class TenantPipelineProbe(Protocol):
    """Domain probe for tenant pipeline operations."""

    def correlation_id_generated(self, supplied: str | None) -> None:
        """Record that a fresh correlation id replaced a missing/invalid one."""
        ...

    def tenant_check_exempt(self, path: str, method: str) -> None:
        """Record that a call bypassed tenant checks via an exemption."""
        ...

    def tenant_header_missing(self, path: str) -> None:
        """Record that the tenant header was absent or blank."""
        ...

    def invalid_tenant_header(self, raw_value: str, path: str) -> None:
        """Record that the tenant header was not a valid UUID."""
        ...

    def tenant_identified(self, tenant_id: str) -> None:
        """Record that the tenant id was validated and entered into context."""
        ...

    def liveness_skipped(self, path: str) -> None:
        """Record that liveness was skipped for a tenant-less call."""
        ...

    def invalid_tenant_identifier(self, tenant_id: str) -> None:
        """Record that the tenant id could not be converted to a store key."""
        ...

    def tenant_not_found(self, tenant_id: str) -> None:
        """Record that no active tenant matched the tenant id."""
        ...

    def tenant_deleted(self, tenant_id: str, tenant_key: int) -> None:
        """Record that the store returned a soft-deleted tenant."""
        ...

    def tenant_verified(self, tenant_id: str, tenant_key: int) -> None:
        """Record that the tenant is live and mapped to its store key."""
        ...

    def tenant_key_unresolved(self, tenant_id: str) -> None:
        """Record that binding was attempted before liveness resolved a key."""
        ...

    def isolation_binding_rejected(self, tenant_id: str, error: Exception) -> None:
        """Record that a call was rejected because binding failed."""
        ...

    def unhandled_error(self, path: str, error: Exception) -> None:
        """Record that an exception escaped the pipeline or the route."""
        ...


class DefaultTenantPipelineProbe:
    """Default implementation of TenantPipelineProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self._logger = logger or structlog.get_logger()

    def correlation_id_generated(self, supplied: str | None) -> None:
        """Record that a fresh correlation id replaced a missing/invalid one."""
        self._logger.debug(
            "correlation_id_generated",
            supplied=supplied,
        )

    def tenant_check_exempt(self, path: str, method: str) -> None:
        """Record that a call bypassed tenant checks via an exemption."""
        self._logger.debug(
            "tenant_check_exempt",
            path=path,
            method=method,
        )

    def tenant_header_missing(self, path: str) -> None:
        """Record that the tenant header was absent or blank."""
        self._logger.warning(
            "tenant_header_missing",
            path=path,
        )

    def invalid_tenant_header(self, raw_value: str, path: str) -> None:
        """Record that the tenant header was not a valid UUID."""
        self._logger.warning(
            "tenant_header_invalid_format",
            raw_value=raw_value,
            path=path,
        )

    def tenant_identified(self, tenant_id: str) -> None:
        """Record that the tenant id was validated and entered into context."""
        self._logger.debug(
            "tenant_identified",
            tenant_id=tenant_id,
        )

    def liveness_skipped(self, path: str) -> None:
        """Record that liveness was skipped for a tenant-less call."""
        self._logger.debug(
            "tenant_liveness_skipped",
            path=path,
        )

    def invalid_tenant_identifier(self, tenant_id: str) -> None:
        """Record that the tenant id could not be converted to a store key."""
        self._logger.warning(
            "tenant_identifier_invalid",
            tenant_id=tenant_id,
        )

    def tenant_not_found(self, tenant_id: str) -> None:
        """Record that no active tenant matched the tenant id."""
        self._logger.warning(
            "tenant_not_found",
            tenant_id=tenant_id,
        )

    def tenant_deleted(self, tenant_id: str, tenant_key: int) -> None:
        """Record that the store returned a soft-deleted tenant."""
        self._logger.warning(
            "tenant_deleted",
            tenant_id=tenant_id,
            tenant_key=tenant_key,
        )

    def tenant_verified(self, tenant_id: str, tenant_key: int) -> None:
        """Record that the tenant is live and mapped to its store key."""
        self._logger.debug(
            "tenant_verified",
            tenant_id=tenant_id,
            tenant_key=tenant_key,
        )

    def tenant_key_unresolved(self, tenant_id: str) -> None:
        """Record that binding was attempted before liveness resolved a key."""
        self._logger.error(
            "tenant_key_unresolved",
            tenant_id=tenant_id,
            message="Session binding ran without a resolved store key",
        )

    def isolation_binding_rejected(self, tenant_id: str, error: Exception) -> None:
        """Record that a call was rejected because binding failed."""
        self._logger.error(
            "tenant_isolation_binding_rejected",
            tenant_id=tenant_id,
            error=str(error),
            error_type=type(error).__name__,
        )

    def unhandled_error(self, path: str, error: Exception) -> None:
        """Record that an exception escaped the pipeline or the route."""
        self._logger.error(
            "unhandled_error",
            path=path,
            error=str(error),
            error_type=type(error).__name__,
        )
