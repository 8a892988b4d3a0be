"""HTTP routes for the tenant registry."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from shared_kernel.middleware.errors import ApiErrorType, ErrorEnvelope, error_response
from tenancy.application.services import TenantService
from tenancy.dependencies import (
    get_bound_tenant_service,
    get_tenant_key,
    get_tenant_service,
)
from tenancy.ports.exceptions import DuplicateTenantError
from tenancy.presentation.models import CreateTenantRequest, TenantResponse

router = APIRouter(
    prefix="/api/v1/tenants",
    tags=["tenants"],
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=TenantResponse,
    responses={
        400: {"description": "Invalid request body", "model": ErrorEnvelope},
        409: {"description": "Display name or domain already registered", "model": ErrorEnvelope},
    },
)
async def create_tenant(
    request: Request,
    body: CreateTenantRequest,
    service: Annotated[TenantService, Depends(get_tenant_service)],
) -> TenantResponse | JSONResponse:
    """Register a new tenant.

    Exempt from tenant checks: the caller has no tenant yet.

    Args:
        request: The incoming request
        body: Tenant creation request
        service: Tenant service for orchestration

    Returns:
        TenantResponse with the tenant's external id, or a 409 error envelope
    """
    try:
        tenant = await service.create_tenant(body.to_domain())
    except DuplicateTenantError as e:
        return error_response(request, ApiErrorType.DUPLICATE_ENTITY, str(e))

    return TenantResponse.from_domain(tenant)


@router.get(
    "/current",
    response_model=TenantResponse,
    responses={
        404: {"description": "Tenant not visible to this call", "model": ErrorEnvelope},
    },
)
async def get_current_tenant(
    request: Request,
    tenant_key: Annotated[int, Depends(get_tenant_key)],
    service: Annotated[TenantService, Depends(get_bound_tenant_service)],
) -> TenantResponse | JSONResponse:
    """Return the calling tenant, read through the tenant-bound session."""
    tenant = await service.get_current_tenant(tenant_key)
    if tenant is None:
        return error_response(
            request,
            ApiErrorType.TENANT_NOT_FOUND,
            "The tenant associated with this request does not exist or has been deleted.",
        )
    return TenantResponse.from_domain(tenant)
