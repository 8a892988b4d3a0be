"""Domain probe for application startup and lifecycle events.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events during application initialization and shutdown.
"""

from __future__ import annotations

from typing import Protocol

import structlog


class StartupProbe(Protocol):
    """Domain probe for application startup operations."""

    def application_started(
        self, version: str, binding_mode: str, isolation_variable: str
    ) -> None:
        """Record that the application finished startup."""
        ...

    def application_stopped(self) -> None:
        """Record that the application shut down and released its pools."""
        ...


class DefaultStartupProbe:
    """Default implementation of StartupProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        self._logger = logger or structlog.get_logger()

    def application_started(
        self, version: str, binding_mode: str, isolation_variable: str
    ) -> None:
        """Record that the application finished startup."""
        self._logger.info(
            "application_started",
            version=version,
            binding_mode=binding_mode,
            isolation_variable=isolation_variable,
        )

    def application_stopped(self) -> None:
        """Record that the application shut down and released its pools."""
        self._logger.info("application_stopped")
