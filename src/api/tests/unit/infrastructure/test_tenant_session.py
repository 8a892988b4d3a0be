"""Unit tests for tenant-bound sessions.

Runs against SQLite (aiosqlite) with a one-connection pool so that every
call reuses the same pooled connection. The isolation primitive used here
keeps the "variable" per DBAPI connection, which is what a PostgreSQL
session-level setting is. The transaction-scoped variant also drops it when
the connection commits or rolls back, like SET LOCAL.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from infrastructure.database.exceptions import (
    IsolationBindingError,
    StaleIsolationBindingError,
)
from infrastructure.database.tenant_session import TenantSessionBinder
from infrastructure.observability.probes import ConnectionProbe


class ConnectionScopedPrimitive:
    """Isolation primitive storing the variable on the pooled connection."""

    transaction_scoped = False

    def __init__(self) -> None:
        self.connections: list[object] = []
        self.values: dict[int, str | None] = {}
        self.seen_before_set: list[str | None] = []
        self.fail_set = False
        self.fail_clear = False

    async def _dbapi_connection(self, session: AsyncSession) -> object:
        connection = await session.connection()
        raw = await connection.get_raw_connection()
        dbapi_connection = raw.dbapi_connection
        if not any(seen is dbapi_connection for seen in self.connections):
            # Keep a reference so ids stay unique for the whole test.
            self.connections.append(dbapi_connection)
        return dbapi_connection

    async def set_isolation_variable(self, session: AsyncSession, tenant_key: str) -> None:
        dbapi_connection = await self._dbapi_connection(session)
        self.seen_before_set.append(self.values.get(id(dbapi_connection)))
        if self.fail_set:
            raise RuntimeError("set_config failed")
        self.values[id(dbapi_connection)] = tenant_key

    async def clear_isolation_variable(self, session: AsyncSession) -> None:
        dbapi_connection = await self._dbapi_connection(session)
        if self.fail_clear:
            raise StaleIsolationBindingError("still set", observed_value="stale")
        self.values[id(dbapi_connection)] = None

    async def current_value(self, session: AsyncSession) -> str | None:
        dbapi_connection = await self._dbapi_connection(session)
        return self.values.get(id(dbapi_connection))


class TransactionScopedPrimitive:
    """Isolation primitive whose variable ends with the transaction."""

    transaction_scoped = True

    def __init__(self, engine: AsyncEngine) -> None:
        self.values: dict[int, str] = {}
        self.bound: list[str] = []
        self.fail_bind = False
        event.listen(engine.sync_engine, "commit", self._transaction_ended)
        event.listen(engine.sync_engine, "rollback", self._transaction_ended)

    def _transaction_ended(self, connection) -> None:
        self.values.pop(id(connection.connection.dbapi_connection), None)

    def bind_transaction(self, connection, tenant_key: str) -> None:
        if self.fail_bind:
            raise RuntimeError("set_config failed")
        self.bound.append(tenant_key)
        self.values[id(connection.connection.dbapi_connection)] = tenant_key

    async def set_isolation_variable(self, session: AsyncSession, tenant_key: str) -> None:
        raise AssertionError("transaction-scoped bindings go through bind_transaction")

    async def current_value(self, session: AsyncSession) -> str | None:
        connection = await session.connection()
        raw = await connection.get_raw_connection()
        return self.values.get(id(raw.dbapi_connection))

    async def clear_isolation_variable(self, session: AsyncSession) -> None:
        observed = await self.current_value(session)
        await session.rollback()
        if observed:
            raise StaleIsolationBindingError("still set", observed_value=observed)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tenant_session.db'}",
        pool_size=1,
        max_overflow=0,
    )
    async with engine.begin() as connection:
        await connection.execute(text("CREATE TABLE tags (tenant_key TEXT, name TEXT)"))
    yield engine
    await engine.dispose()


@pytest.fixture
def primitive() -> ConnectionScopedPrimitive:
    return ConnectionScopedPrimitive()


@pytest.fixture
def probe() -> MagicMock:
    return MagicMock(spec=ConnectionProbe)


@pytest.fixture
def binder(engine: AsyncEngine, primitive, probe) -> TenantSessionBinder:
    return TenantSessionBinder(engine_provider=lambda: engine, isolation=primitive, probe=probe)


async def _count_tags(engine: AsyncEngine) -> int:
    async with engine.connect() as connection:
        result = await connection.execute(text("SELECT count(*) FROM tags"))
        return result.scalar_one()


class TestBindingLifecycle:
    """Bind, use and release on the same pooled connection."""

    @pytest.mark.asyncio
    async def test_variable_visible_inside_call(self, binder, primitive) -> None:
        async with binder.bound_session("42") as session:
            assert await primitive.current_value(session) == "42"

    @pytest.mark.asyncio
    async def test_reset_before_reuse_across_sequential_calls(
        self, binder, primitive, probe: MagicMock
    ) -> None:
        """A reused connection never carries the previous call's tenant."""
        for key in ("1", "2", "3"):
            async with binder.bound_session(key):
                pass

        assert len(primitive.connections) == 1
        assert primitive.seen_before_set == [None, None, None]
        assert probe.isolation_released.call_count == 3
        probe.connection_discarded.assert_not_called()

    @pytest.mark.asyncio
    async def test_commits_on_normal_exit(self, binder, engine) -> None:
        async with binder.bound_session("42") as session:
            await session.execute(text("INSERT INTO tags VALUES ('42', 'red')"))

        assert await _count_tags(engine) == 1

    @pytest.mark.asyncio
    async def test_rolls_back_and_clears_on_exception(
        self, binder, engine, primitive
    ) -> None:
        with pytest.raises(ValueError):
            async with binder.bound_session("42") as session:
                await session.execute(text("INSERT INTO tags VALUES ('42', 'red')"))
                raise ValueError("business logic failed")

        assert await _count_tags(engine) == 0
        assert list(primitive.values.values()) == [None]

    @pytest.mark.asyncio
    async def test_cleanup_runs_when_call_is_cancelled(
        self, binder, primitive, probe: MagicMock
    ) -> None:
        entered = asyncio.Event()

        async def call() -> None:
            async with binder.bound_session("42"):
                entered.set()
                await asyncio.Event().wait()

        task = asyncio.create_task(call())
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert list(primitive.values.values()) == [None]
        probe.isolation_released.assert_called_once_with("42")


class TestFailedRelease:
    """Connections whose release cannot be confirmed are discarded."""

    @pytest.mark.asyncio
    async def test_clear_failure_discards_connection(
        self, binder, primitive, probe: MagicMock
    ) -> None:
        primitive.fail_clear = True
        async with binder.bound_session("42"):
            pass

        probe.isolation_release_failed.assert_called_once()
        probe.connection_discarded.assert_called_once_with("42")

        primitive.fail_clear = False
        async with binder.bound_session("43"):
            pass

        # The next call got a fresh connection that never saw tenant 42.
        assert len(primitive.connections) == 2
        assert primitive.seen_before_set == [None, None]

    @pytest.mark.asyncio
    async def test_set_failure_raises_and_skips_body(
        self, binder, primitive, probe: MagicMock
    ) -> None:
        primitive.fail_set = True
        body_ran = False

        with pytest.raises(IsolationBindingError) as exc_info:
            async with binder.bound_session("42"):
                body_ran = True

        assert body_ran is False
        assert exc_info.value.tenant_key == "42"
        probe.isolation_bind_failed.assert_called_once()
        probe.connection_discarded.assert_called_once_with("42")

    @pytest.mark.asyncio
    async def test_connect_failure_raises_binding_error(self, primitive, probe) -> None:
        def broken_engine():
            raise OSError("connection refused")

        binder = TenantSessionBinder(
            engine_provider=broken_engine, isolation=primitive, probe=probe
        )

        with pytest.raises(IsolationBindingError):
            async with binder.bound_session("42"):
                pass

        assert primitive.seen_before_set == []


class TestTransactionScopedBinding:
    """Every transaction on the pinned connection carries the tenant."""

    @pytest.fixture
    def local_primitive(self, engine: AsyncEngine) -> TransactionScopedPrimitive:
        return TransactionScopedPrimitive(engine)

    @pytest.fixture
    def local_binder(self, engine: AsyncEngine, local_primitive, probe) -> TenantSessionBinder:
        return TenantSessionBinder(
            engine_provider=lambda: engine, isolation=local_primitive, probe=probe
        )

    @pytest.mark.asyncio
    async def test_binding_survives_commit_inside_call(
        self, local_binder, local_primitive, engine, probe: MagicMock
    ) -> None:
        async with local_binder.bound_session("42") as session:
            await session.execute(text("INSERT INTO tags VALUES ('42', 'red')"))
            await session.commit()

            assert await local_primitive.current_value(session) == "42"

        assert await _count_tags(engine) == 1
        assert not any(local_primitive.values.values())
        probe.isolation_released.assert_called_once_with("42")
        probe.isolation_release_failed.assert_not_called()

    @pytest.mark.asyncio
    async def test_session_begin_inside_call(
        self, local_binder, local_primitive, engine, probe: MagicMock
    ) -> None:
        async with local_binder.bound_session("42") as session:
            async with session.begin():
                await session.execute(text("INSERT INTO tags VALUES ('42', 'red')"))
                assert await local_primitive.current_value(session) == "42"

        assert await _count_tags(engine) == 1
        probe.isolation_released.assert_called_once_with("42")
        probe.connection_discarded.assert_not_called()

    @pytest.mark.asyncio
    async def test_cleanup_check_runs_unbound(
        self, local_binder, local_primitive, probe: MagicMock
    ) -> None:
        for key in ("1", "2"):
            async with local_binder.bound_session(key) as session:
                await session.execute(text("SELECT 1"))

        # One bind at entry plus one for the statement's transaction per call
        assert local_primitive.bound == ["1", "1", "2", "2"]
        assert probe.isolation_released.call_count == 2
        probe.isolation_release_failed.assert_not_called()

    @pytest.mark.asyncio
    async def test_bind_failure_raises_binding_error(
        self, local_binder, local_primitive, probe: MagicMock
    ) -> None:
        local_primitive.fail_bind = True
        body_ran = False

        with pytest.raises(IsolationBindingError):
            async with local_binder.bound_session("42"):
                body_ran = True

        assert body_ran is False
        probe.isolation_bind_failed.assert_called_once()
        probe.connection_discarded.assert_called_once_with("42")
