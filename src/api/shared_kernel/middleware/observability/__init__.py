"""Observability for shared middleware operations."""

from shared_kernel.middleware.observability.tenant_pipeline_probe import (
    DefaultTenantPipelineProbe,
    TenantPipelineProbe,
)

__all__ = [
    "DefaultTenantPipelineProbe",
    "TenantPipelineProbe",
]
