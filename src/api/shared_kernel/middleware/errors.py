"""Error taxonomy and error envelope for rejected calls.

Every rejection produced by the tenant pipeline (and by the tenant registry
routes) is rendered as the same JSON shape:

    {
        "type": "https://api.tag-service.com/errors#missing-header",
        "title": "Missing Required Header",
        "status": 400,
        "detail": "The request is missing the required 'X-Tenant-Id' header.",
        "instance": "/api/v1/tags",
        "request_id": "7f6c...",
        "timestamp": "2026-10-18T12:00:00.000000+00:00"
    }
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shared_kernel.call_context import ContextSlot, call_context

ERROR_TYPE_BASE_URI = "https://api.tag-service.com/errors#"


class ApiErrorType(Enum):
    """Closed set of error kinds, each with a fixed code, title and status."""

    MISSING_HEADER = ("missing-header", "Missing Required Header", status.HTTP_400_BAD_REQUEST)
    INVALID_HEADER = ("invalid-header", "Invalid Header Format", status.HTTP_400_BAD_REQUEST)
    INVALID_TENANT_IDENTIFIER = (
        "invalid-tenant-id",
        "Invalid Tenant Identifier",
        status.HTTP_400_BAD_REQUEST,
    )
    TENANT_NOT_FOUND = ("tenant-not-found", "Tenant Not Found", status.HTTP_404_NOT_FOUND)
    TENANT_DELETED = ("tenant-deleted", "Tenant Deleted", status.HTTP_410_GONE)
    ISOLATION_BINDING_FAILED = (
        "isolation-binding-failed",
        "Tenant Isolation Unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    VALIDATION_ERROR = ("validation-error", "Validation Error", status.HTTP_400_BAD_REQUEST)
    DUPLICATE_ENTITY = ("duplicate-entity", "Duplicate Entity", status.HTTP_409_CONFLICT)
    INTERNAL_ERROR = (
        "internal-error",
        "Internal Server Error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )

    def __init__(self, code: str, title: str, http_status: int) -> None:
        self.code = code
        self.title = title
        self.http_status = http_status

    @property
    def type_uri(self) -> str:
        """Full error type URI, e.g. ``...errors#tenant-not-found``."""
        return f"{ERROR_TYPE_BASE_URI}{self.code}"


class ErrorEnvelope(BaseModel):
    """Response body for every rejected call."""

    type: str = Field(..., description="Error type URI")
    title: str = Field(..., description="Human-readable summary of the error kind")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Explanation specific to this call")
    instance: str = Field(..., description="Request path")
    request_id: str | None = Field(default=None, description="Correlation id")
    timestamp: datetime = Field(..., description="When the error was produced")

    @classmethod
    def build(cls, error_type: ApiErrorType, detail: str, instance: str) -> ErrorEnvelope:
        """Build an envelope stamped with the current correlation id."""
        return cls(
            type=error_type.type_uri,
            title=error_type.title,
            status=error_type.http_status,
            detail=detail,
            instance=instance,
            request_id=call_context.get(ContextSlot.CORRELATION_ID),
            timestamp=datetime.now(timezone.utc),
        )


def error_response(request: Request, error_type: ApiErrorType, detail: str) -> JSONResponse:
    """Render a terminal error response for ``request``."""
    envelope = ErrorEnvelope.build(error_type, detail, instance=request.url.path)
    return JSONResponse(
        status_code=error_type.http_status,
        content=envelope.model_dump(mode="json", exclude_none=True),
    )
