"""Tenancy presentation layer.

Exposes the tenant registry router; request and response models live in
``tenancy.presentation.models``.
"""

from __future__ import annotations

from tenancy.presentation.routes import router

__all__ = ["router"]
