"""Calls that bypass tenant identification."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infrastructure.settings import TenancySettings


@dataclass(frozen=True)
class ExemptionPolicy:
    """Decides whether a call is exempt from tenant checks.

    Exempt calls are health/monitoring paths (prefix match) and tenant
    creation (POST to the versioned tenant collection path).

    Attributes:
        path_prefixes: Prefixes of paths that never carry a tenant.
        tenant_creation_pattern: Compiled pattern of the tenant collection path.
    """

    path_prefixes: tuple[str, ...]
    tenant_creation_pattern: re.Pattern[str]

    @classmethod
    def from_settings(cls, settings: TenancySettings) -> ExemptionPolicy:
        """Build the policy from tenancy settings."""
        return cls(
            path_prefixes=tuple(settings.exempt_path_prefixes),
            tenant_creation_pattern=re.compile(settings.tenant_creation_path_pattern),
        )

    def is_exempt(self, path: str, method: str) -> bool:
        """Whether a call to ``path`` with ``method`` skips tenant checks."""
        return self.is_exempt_path(path) or self.is_tenant_creation(path, method)

    def is_exempt_path(self, path: str) -> bool:
        """Health/monitoring paths."""
        return any(path.startswith(prefix) for prefix in self.path_prefixes)

    def is_tenant_creation(self, path: str, method: str) -> bool:
        """POST to the tenant collection path."""
        return method.upper() == "POST" and self.tenant_creation_pattern.match(path) is not None
