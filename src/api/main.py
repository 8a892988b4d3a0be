"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.dependencies import (
    close_database_connections,
    get_read_session,
)
from infrastructure.logging import configure_logging
from infrastructure.observability import DefaultStartupProbe
from infrastructure.settings import get_settings, get_tenancy_settings
from infrastructure.version import __version__
from shared_kernel.middleware import install_tenant_pipeline
from shared_kernel.middleware.errors import ApiErrorType, error_response
from tenancy.dependencies import get_tenant_session_binder, tenant_store_scope
from tenancy.presentation import router as tenant_router


@asynccontextmanager
async def tagservice_lifespan(app: FastAPI):
    """Application lifespan context.

    Manages:
    - Logging configuration
    - Database engine lifecycle (created lazily, disposed on shutdown)
    """
    configure_logging()
    probe = DefaultStartupProbe()
    tenancy = get_tenancy_settings()
    probe.application_started(
        version=__version__,
        binding_mode=tenancy.binding_mode,
        isolation_variable=tenancy.isolation_variable,
    )

    yield

    await close_database_connections()
    probe.application_stopped()


app = FastAPI(
    title=get_settings().app_name,
    description="Tag service API with per-request tenant isolation",
    version=__version__,
    lifespan=tagservice_lifespan,
)

install_tenant_pipeline(
    app,
    settings=get_tenancy_settings(),
    store_scope=tenant_store_scope,
    binder=get_tenant_session_binder(),
)

# Include tenancy bounded context routes
app.include_router(tenant_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation errors as error envelopes."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    detail = "; ".join(messages) or "The request is invalid."
    return error_response(request, ApiErrorType.VALIDATION_ERROR, detail)


@app.get("/health")
def health():
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/health/db")
async def health_db(
    session: Annotated[AsyncSession, Depends(get_read_session)],
) -> dict:
    """Check database connection health."""
    try:
        await session.execute(text("SELECT 1"))
        return {"status": "ok", "connected": True}
    except Exception as e:
        return {
            "status": "error",
            "connected": False,
            "error": str(e),
        }
