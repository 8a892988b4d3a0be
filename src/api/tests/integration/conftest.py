"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance. Connection settings
come from the usual TAGSERVICE_DB_* environment variables.
"""

from __future__ import annotations

from typing import Annotated

import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.dependencies import (
    close_database_connections,
    get_write_engine,
)
from infrastructure.database.isolation import PostgresIsolationPrimitive
from infrastructure.settings import get_tenancy_settings
from main import tagservice_lifespan
from shared_kernel.middleware import install_tenant_pipeline
from tenancy.dependencies import (
    get_tenant_session,
    get_tenant_session_binder,
    tenant_store_scope,
)
from tenancy.infrastructure.models import TenantModel
from tenancy.presentation import router as tenant_router

NOTES_DDL = [
    "DROP TABLE IF EXISTS tag_notes",
    """
    CREATE TABLE tag_notes (
        id bigserial PRIMARY KEY,
        tenant_key bigint NOT NULL REFERENCES tenants(id),
        body text NOT NULL
    )
    """,
    "ALTER TABLE tag_notes ENABLE ROW LEVEL SECURITY",
    "ALTER TABLE tag_notes FORCE ROW LEVEL SECURITY",
    """
    CREATE POLICY tag_notes_tenant_isolation ON tag_notes
        USING (tenant_key = NULLIF(current_setting('app.current_tenant_id', true), '')::bigint)
    """,
]


@pytest_asyncio.fixture
async def database():
    """Create the tenants table and an RLS-protected table; drop them afterwards."""
    engine = get_write_engine()
    async with engine.begin() as connection:
        await connection.execute(text("DROP TABLE IF EXISTS tag_notes"))
        await connection.run_sync(TenantModel.__table__.drop, checkfirst=True)
        await connection.run_sync(TenantModel.__table__.create)
        for statement in NOTES_DDL:
            await connection.execute(text(statement))

    yield engine

    async with engine.begin() as connection:
        await connection.execute(text("DROP TABLE IF EXISTS tag_notes"))
        await connection.run_sync(TenantModel.__table__.drop, checkfirst=True)
    await engine.dispose()
    await close_database_connections()
    get_tenant_session_binder.cache_clear()


@pytest.fixture
def isolation() -> PostgresIsolationPrimitive:
    return PostgresIsolationPrimitive.from_settings(get_tenancy_settings())


@pytest.fixture
def integration_app(database) -> FastAPI:
    """Application wired with the real tenant store and session binder."""
    app = FastAPI(lifespan=tagservice_lifespan)
    install_tenant_pipeline(
        app,
        settings=get_tenancy_settings(),
        store_scope=tenant_store_scope,
        binder=get_tenant_session_binder(),
    )
    app.include_router(tenant_router)

    @app.get("/api/v1/notes")
    async def list_notes(
        session: Annotated[AsyncSession, Depends(get_tenant_session)],
    ) -> dict:
        variable = await session.scalar(
            text("SELECT current_setting('app.current_tenant_id', true)")
        )
        bodies = (await session.scalars(text("SELECT body FROM tag_notes ORDER BY id"))).all()
        return {"isolation_variable": variable, "notes": list(bodies)}

    @app.post("/api/v1/notes", status_code=201)
    async def add_note(
        payload: dict,
        session: Annotated[AsyncSession, Depends(get_tenant_session)],
    ) -> dict:
        async with session.begin():
            await session.execute(
                text(
                    "INSERT INTO tag_notes (tenant_key, body) VALUES "
                    "(current_setting('app.current_tenant_id')::bigint, :body)"
                ),
                {"body": payload["body"]},
            )
        variable = await session.scalar(
            text("SELECT current_setting('app.current_tenant_id', true)")
        )
        return {"isolation_variable": variable}

    return app


@pytest_asyncio.fixture
async def async_client(integration_app: FastAPI):
    """Create async HTTP client for testing."""
    async with LifespanManager(integration_app):
        transport = ASGITransport(app=integration_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
