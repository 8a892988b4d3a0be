"""Tenant-bound database sessions.

A ``TenantSessionBinder`` hands out one session per call, pinned to a single
pooled connection for the call's whole lifetime, with the tenant isolation
variable set on it. Pinning matters: an ``AsyncSession`` bound to an engine
may check out a different connection after every commit, which would leave
the binding on one connection and the cleanup on another.

The binding transaction is committed before the session is handed out, so
callers may run their own transactions (``async with session.begin()``,
explicit ``commit()``). A transaction-scoped binding would not survive that
commit, so in that mode an ``after_begin`` listener binds every transaction
the session starts on the pinned connection. The listener is removed before
release so the cleanup check runs unbound.

Release always runs, on normal exit, on exceptions and on cancellation:

1. commit (normal exit) or roll back (exception) the call's transaction;
2. clear the isolation variable and verify it is gone;
3. return the connection to the pool.

If step 1 or 2 fails, the connection is invalidated so the pool closes it
instead of handing it to another tenant. A failed commit is re-raised after
cleanup because the call's writes were not persisted; a failed clear is only
logged.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Protocol

import anyio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession

from infrastructure.database.exceptions import IsolationBindingError
from infrastructure.database.isolation import IsolationPrimitive
from infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)


class SessionBinder(Protocol):
    """Anything that can open a tenant-bound session for one call."""

    def bound_session(self, tenant_key: str) -> AbstractAsyncContextManager[AsyncSession]:
        """Open a session whose connection is bound to ``tenant_key``.

        Raises:
            IsolationBindingError: If the binding could not be established.
        """
        ...


class TenantSessionBinder:
    """Scoped bind/use/unbind of the tenant isolation variable."""

    def __init__(
        self,
        engine_provider: Callable[[], AsyncEngine],
        isolation: IsolationPrimitive,
        probe: ConnectionProbe | None = None,
    ) -> None:
        """Initialize the binder.

        Args:
            engine_provider: Returns the engine whose pool serves tenant calls.
                Resolved per call so engines recreated after shutdown are used.
            isolation: Primitive that sets/clears the isolation variable.
            probe: Optional observability probe.
        """
        self._engine_provider = engine_provider
        self._isolation = isolation
        self._probe = probe or DefaultConnectionProbe()

    @asynccontextmanager
    async def bound_session(self, tenant_key: str) -> AsyncIterator[AsyncSession]:
        """Yield a session bound to ``tenant_key`` on a dedicated connection.

        Raises:
            IsolationBindingError: If no connection could be acquired or the
                isolation variable could not be set. Nothing is yielded.
        """
        try:
            connection = await self._engine_provider().connect()
        except Exception as e:
            self._probe.isolation_bind_failed(tenant_key, e)
            raise IsolationBindingError(
                f"Could not acquire a connection for tenant binding: {e}",
                tenant_key=tenant_key,
            ) from e

        session = AsyncSession(bind=connection, expire_on_commit=False)
        try:
            rebind = await self._bind(session, connection, tenant_key)

            succeeded = False
            try:
                yield session
                succeeded = True
            finally:
                if rebind is not None:
                    event.remove(session.sync_session, "after_begin", rebind)
                with anyio.CancelScope(shield=True):
                    await self._release(session, connection, tenant_key, commit=succeeded)
        finally:
            with anyio.CancelScope(shield=True):
                try:
                    await session.close()
                finally:
                    await connection.close()

    async def _bind(
        self, session: AsyncSession, connection: AsyncConnection, tenant_key: str
    ) -> Callable[..., None] | None:
        rebind = None
        try:
            if self._isolation.transaction_scoped:
                rebind = self._bind_every_transaction(session, tenant_key)
                # Begins the first transaction, which fires the listener
                await session.connection()
            else:
                await self._isolation.set_isolation_variable(session, tenant_key)
            await session.commit()
        except Exception as e:
            self._probe.isolation_bind_failed(tenant_key, e)
            with anyio.CancelScope(shield=True):
                await self._discard(connection, tenant_key)
            raise IsolationBindingError(
                f"Failed to bind tenant isolation variable: {e}",
                tenant_key=tenant_key,
            ) from e

        self._probe.isolation_bound(tenant_key, self._isolation.transaction_scoped)
        return rebind

    def _bind_every_transaction(
        self, session: AsyncSession, tenant_key: str
    ) -> Callable[..., None]:
        isolation = self._isolation

        def bind_transaction(_session, _transaction, sync_connection) -> None:
            isolation.bind_transaction(sync_connection, tenant_key)

        event.listen(session.sync_session, "after_begin", bind_transaction)
        return bind_transaction

    async def _release(
        self,
        session: AsyncSession,
        connection: AsyncConnection,
        tenant_key: str,
        commit: bool,
    ) -> None:
        trusted = True
        commit_error: Exception | None = None

        try:
            if commit:
                await session.commit()
            else:
                await session.rollback()
        except Exception as e:
            trusted = False
            if commit:
                commit_error = e
            self._probe.transaction_end_failed(tenant_key, committed=commit, error=e)

        # Connection state is unknown after a failed commit/rollback; skip
        # straight to discarding it.
        if trusted:
            try:
                await self._isolation.clear_isolation_variable(session)
            except Exception as e:
                trusted = False
                self._probe.isolation_release_failed(tenant_key, e)

        if trusted:
            self._probe.isolation_released(tenant_key)
        else:
            await self._discard(connection, tenant_key)

        if commit_error is not None:
            raise commit_error

    async def _discard(self, connection: AsyncConnection, tenant_key: str) -> None:
        await connection.invalidate()
        self._probe.connection_discarded(tenant_key)
