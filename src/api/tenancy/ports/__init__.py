"""Ports for the tenancy bounded context."""

from tenancy.ports.exceptions import DuplicateTenantError
from tenancy.ports.repositories import ITenantRepository

__all__ = ["DuplicateTenantError", "ITenantRepository"]
