"""Exceptions raised by tenancy ports."""


class DuplicateTenantError(Exception):
    """Raised when a tenant's display name or domain is already registered."""

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field
