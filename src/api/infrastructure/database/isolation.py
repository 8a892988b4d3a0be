"""Storage-session isolation primitive for PostgreSQL row-level security.

RLS policies on tenant-owned tables compare rows against
``current_setting('app.current_tenant_id', true)``. This module sets and
clears that setting on a session's connection.

Two scopes are supported:

- transaction scoped (``set_config(name, value, true)``, i.e. SET LOCAL):
  PostgreSQL drops the value when the transaction ends, whether it commits
  or rolls back. The binder re-issues it at the start of every transaction
  through ``bind_transaction``. Clearing only verifies that nothing survived.
- session scoped (``set_config(name, value, false)``): the value stays on the
  connection until ``RESET``. Clearing resets it, commits, and verifies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import text

from infrastructure.database.exceptions import StaleIsolationBindingError

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection
    from sqlalchemy.ext.asyncio import AsyncSession

    from infrastructure.settings import TenancySettings


@runtime_checkable
class IsolationPrimitive(Protocol):
    """Sets and clears the tenant isolation variable on a session."""

    @property
    def transaction_scoped(self) -> bool:
        """Whether the binding ends with the session's current transaction."""
        ...

    async def set_isolation_variable(self, session: AsyncSession, tenant_key: str) -> None:
        """Bind ``tenant_key`` to the session's connection.

        Raises:
            Exception: Any driver error; the caller treats it as a failed bind.
        """
        ...

    def bind_transaction(self, connection: Connection, tenant_key: str) -> None:
        """Bind ``tenant_key`` for the transaction just begun on ``connection``.

        Called from a session event, so it runs synchronously on the
        underlying connection.
        """
        ...

    async def clear_isolation_variable(self, session: AsyncSession) -> None:
        """Remove the binding from the session's connection.

        Raises:
            StaleIsolationBindingError: If the variable is still set afterwards.
        """
        ...


class PostgresIsolationPrimitive:
    """IsolationPrimitive backed by PostgreSQL custom parameters."""

    def __init__(
        self,
        variable: str = "app.current_tenant_id",
        transaction_scoped: bool = True,
    ) -> None:
        self._variable = variable
        self._transaction_scoped = transaction_scoped

    @classmethod
    def from_settings(cls, settings: TenancySettings) -> PostgresIsolationPrimitive:
        """Build the primitive from tenancy settings."""
        return cls(
            variable=settings.isolation_variable,
            transaction_scoped=settings.transaction_scoped,
        )

    @property
    def variable(self) -> str:
        """Name of the PostgreSQL setting."""
        return self._variable

    @property
    def transaction_scoped(self) -> bool:
        """Whether the binding ends with the session's current transaction."""
        return self._transaction_scoped

    async def set_isolation_variable(self, session: AsyncSession, tenant_key: str) -> None:
        """Bind ``tenant_key`` using set_config (bind parameters, no interpolation)."""
        await session.execute(
            text("SELECT set_config(:name, :value, :is_local)"),
            {
                "name": self._variable,
                "value": tenant_key,
                "is_local": self._transaction_scoped,
            },
        )

    def bind_transaction(self, connection: Connection, tenant_key: str) -> None:
        """Bind ``tenant_key`` with SET LOCAL semantics on a sync connection."""
        connection.execute(
            text("SELECT set_config(:name, :value, true)"),
            {"name": self._variable, "value": tenant_key},
        )

    async def clear_isolation_variable(self, session: AsyncSession) -> None:
        """Reset (session scope) and verify the variable is empty."""
        if not self._transaction_scoped:
            # Name is validated as an identifier by TenancySettings
            await session.execute(text(f"RESET {self._variable}"))
            await session.commit()

        observed = await self.current_value(session)
        await session.rollback()
        if observed:
            raise StaleIsolationBindingError(
                f"{self._variable} still set after release",
                observed_value=observed,
            )

    async def current_value(self, session: AsyncSession) -> str | None:
        """Read the variable as RLS policies see it ('' and NULL mean unset)."""
        result = await session.execute(
            text("SELECT current_setting(:name, true)"),
            {"name": self._variable},
        )
        value = result.scalar_one_or_none()
        return value or None
