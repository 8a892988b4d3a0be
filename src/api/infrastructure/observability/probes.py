"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import Protocol

import structlog


class ConnectionProbe(Protocol):
    """Domain probe for database connection observability.

    Captures the lifecycle of tenant-bound connections: binding the
    isolation variable, releasing it, and discarding connections whose
    release could not be confirmed.
    """

    def isolation_bound(self, tenant_key: str, transaction_scoped: bool) -> None:
        """Record that the isolation variable was set on a connection."""
        ...

    def isolation_bind_failed(self, tenant_key: str, error: Exception) -> None:
        """Record that setting the isolation variable failed."""
        ...

    def isolation_released(self, tenant_key: str) -> None:
        """Record that the binding was cleared and the connection returned."""
        ...

    def isolation_release_failed(self, tenant_key: str, error: Exception) -> None:
        """Record that clearing the isolation variable failed."""
        ...

    def transaction_end_failed(
        self, tenant_key: str, committed: bool, error: Exception
    ) -> None:
        """Record that the call's transaction could not be committed/rolled back."""
        ...

    def connection_discarded(self, tenant_key: str) -> None:
        """Record that a connection was invalidated instead of returned to the pool."""
        ...

    def pool_closed(self) -> None:
        """Record that the connection pool was closed."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog.

    Request-scoped metadata (request_id, tenant_id) is attached by the
    logging configuration, not by the probe.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self._logger = logger or structlog.get_logger()

    def isolation_bound(self, tenant_key: str, transaction_scoped: bool) -> None:
        """Record that the isolation variable was set on a connection."""
        self._logger.debug(
            "tenant_isolation_bound",
            tenant_key=tenant_key,
            transaction_scoped=transaction_scoped,
        )

    def isolation_bind_failed(self, tenant_key: str, error: Exception) -> None:
        """Record that setting the isolation variable failed."""
        self._logger.error(
            "tenant_isolation_bind_failed",
            tenant_key=tenant_key,
            error=str(error),
            error_type=type(error).__name__,
        )

    def isolation_released(self, tenant_key: str) -> None:
        """Record that the binding was cleared and the connection returned."""
        self._logger.debug(
            "tenant_isolation_released",
            tenant_key=tenant_key,
        )

    def isolation_release_failed(self, tenant_key: str, error: Exception) -> None:
        """Record that clearing the isolation variable failed."""
        self._logger.error(
            "tenant_isolation_release_failed",
            tenant_key=tenant_key,
            error=str(error),
            error_type=type(error).__name__,
        )

    def transaction_end_failed(
        self, tenant_key: str, committed: bool, error: Exception
    ) -> None:
        """Record that the call's transaction could not be committed/rolled back."""
        self._logger.error(
            "tenant_transaction_end_failed",
            tenant_key=tenant_key,
            operation="commit" if committed else "rollback",
            error=str(error),
            error_type=type(error).__name__,
        )

    def connection_discarded(self, tenant_key: str) -> None:
        """Record that a connection was invalidated instead of returned to the pool."""
        self._logger.warning(
            "tenant_connection_discarded",
            tenant_key=tenant_key,
            message="Connection invalidated; the pool will not reuse it",
        )

    def pool_closed(self) -> None:
        """Record that the connection pool was closed."""
        self._logger.info("connection_pool_closed")
