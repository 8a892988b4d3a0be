"""Database infrastructure - shared connection primitives."""

from infrastructure.database.exceptions import (
    DatabaseError,
    IsolationBindingError,
    StaleIsolationBindingError,
)

__all__ = [
    "DatabaseError",
    "IsolationBindingError",
    "StaleIsolationBindingError",
]
