"""Exceptions raised inside pipeline stages.

Each carries the ApiErrorType it maps to. Stages catch them at their own
boundary and render an error envelope; none escapes into generic error
handling.
"""

from __future__ import annotations

from shared_kernel.middleware.errors import ApiErrorType


class TenantPipelineError(Exception):
    """Base exception for tenant pipeline rejections."""

    error_type: ApiErrorType

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class MissingTenantHeaderError(TenantPipelineError):
    """Raised when the tenant header is absent or blank."""

    error_type = ApiErrorType.MISSING_HEADER


class InvalidTenantHeaderError(TenantPipelineError):
    """Raised when the tenant header is not a valid UUID."""

    error_type = ApiErrorType.INVALID_HEADER


class InvalidTenantIdentifierError(TenantPipelineError):
    """Raised when the tenant id cannot be converted to a store key."""

    error_type = ApiErrorType.INVALID_TENANT_IDENTIFIER


class TenantNotFoundError(TenantPipelineError):
    """Raised when no active tenant matches the tenant id."""

    error_type = ApiErrorType.TENANT_NOT_FOUND


class TenantDeletedError(TenantPipelineError):
    """Raised when the store returns a tenant carrying a deletion timestamp."""

    error_type = ApiErrorType.TENANT_DELETED

    def __init__(self, detail: str, tenant_key: int):
        super().__init__(detail)
        self.tenant_key = tenant_key
