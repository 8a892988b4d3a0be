"""Shared middleware for cross-cutting concerns.

The tenant isolation pipeline lives here: four ASGI middlewares that every
inbound call passes through, in this order:

1. CorrelationMiddleware - correlation id for logs and responses
2. TenantIdentityMiddleware - X-Tenant-Id presence and format
3. TenantLivenessMiddleware - tenant exists and is not soft-deleted
4. SessionBindingMiddleware - tenant bound into the database session

Use ``install_tenant_pipeline`` to register them; it owns the ordering.
"""

from shared_kernel.middleware.pipeline import install_tenant_pipeline

__all__ = ["install_tenant_pipeline"]
