"""Database-specific exceptions."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class IsolationBindingError(DatabaseError):
    """Raised when the tenant isolation variable cannot be set on a session.

    The connection that failed the bind has already been invalidated when
    this is raised; callers only need to reject the call.
    """

    def __init__(self, message: str, tenant_key: str | None = None):
        super().__init__(message)
        self.tenant_key = tenant_key


class StaleIsolationBindingError(DatabaseError):
    """Raised when a connection still carries a tenant binding after release."""

    def __init__(self, message: str, observed_value: str | None = None):
        super().__init__(message)
        self.observed_value = observed_value
