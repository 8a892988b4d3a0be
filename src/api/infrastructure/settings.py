"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# PostgreSQL custom parameters must be qualified ("prefix.name")
_CUSTOM_PARAMETER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\.[A-Za-z_][A-Za-z0-9_]*$")


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        TAGSERVICE_DB_HOST: Database host (default: localhost)
        TAGSERVICE_DB_PORT: Database port (default: 5432)
        TAGSERVICE_DB_DATABASE: Database name (default: tagservice)
        TAGSERVICE_DB_USERNAME: Database user (default: tagservice)
        TAGSERVICE_DB_PASSWORD: Database password (required in production)
        TAGSERVICE_DB_POOL_MIN_CONNECTIONS: Minimum connections in pool (default: 2)
        TAGSERVICE_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
        TAGSERVICE_DB_POOL_TIMEOUT_SECONDS: Wait for a free pooled connection (default: 30)
        TAGSERVICE_DB_APPLICATION_NAME: Prefix of the reported application_name
            (default: tagservice)
    """

    model_config = SettingsConfigDict(
        env_prefix="TAGSERVICE_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="tagservice", description="Database name")
    username: str = Field(default="tagservice", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    pool_min_connections: int = Field(
        default=2,
        description="Minimum connections in pool",
        ge=1,
        le=100,
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )
    pool_timeout_seconds: float = Field(
        default=30.0,
        description="Seconds to wait for a free pooled connection",
        gt=0,
    )
    application_name: str = Field(
        default="tagservice",
        description="Prefix of the application_name reported by each pool",
        min_length=1,
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min."""
        if self.pool_max_connections < self.pool_min_connections:
            raise ValueError(
                f"pool_max_connections ({self.pool_max_connections}) must be >= "
                f"pool_min_connections ({self.pool_min_connections})"
            )
        return self

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"


class TenancySettings(BaseSettings):
    """Tenant isolation pipeline settings.

    Environment variables:
        TAGSERVICE_TENANCY_TENANT_HEADER: Header carrying the tenant UUID
            (default: X-Tenant-Id)
        TAGSERVICE_TENANCY_CORRELATION_HEADER: Header carrying the request
            correlation id (default: X-Request-ID)
        TAGSERVICE_TENANCY_EXEMPT_PATH_PREFIXES: JSON list of path prefixes
            that bypass tenant checks (default: ["/health", "/api/v1/health"])
        TAGSERVICE_TENANCY_TENANT_CREATION_PATH_PATTERN: Regex matching the
            tenant collection path; POST to it bypasses tenant checks
        TAGSERVICE_TENANCY_ISOLATION_VARIABLE: PostgreSQL setting consulted
            by row-level security policies (default: app.current_tenant_id)
        TAGSERVICE_TENANCY_BINDING_MODE: "transaction" to scope the binding
            to the call's transaction (SET LOCAL semantics), "session" to set
            it on the connection and RESET it afterwards (default: transaction)
    """

    model_config = SettingsConfigDict(
        env_prefix="TAGSERVICE_TENANCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tenant_header: str = Field(default="X-Tenant-Id", min_length=1)
    correlation_header: str = Field(default="X-Request-ID", min_length=1)
    exempt_path_prefixes: list[str] = Field(
        default_factory=lambda: ["/health", "/api/v1/health"],
        description="Path prefixes exempt from tenant validation",
    )
    tenant_creation_path_pattern: str = Field(
        default=r"^/api/v\d+/tenants/?$",
        description="Pattern of the tenant collection path (POST is exempt)",
    )
    isolation_variable: str = Field(
        default="app.current_tenant_id",
        description="PostgreSQL custom parameter read by RLS policies",
    )
    binding_mode: Literal["transaction", "session"] = Field(
        default="transaction",
        description="How the isolation variable is scoped on the connection",
    )

    @field_validator("tenant_creation_path_pattern")
    @classmethod
    def validate_pattern(cls, value: str) -> str:
        """Reject patterns that do not compile."""
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"tenant_creation_path_pattern is not a valid regex: {e}")
        return value

    @field_validator("isolation_variable")
    @classmethod
    def validate_isolation_variable(cls, value: str) -> str:
        """The variable name is interpolated into RESET, so keep it an identifier."""
        if not _CUSTOM_PARAMETER_PATTERN.match(value):
            raise ValueError(
                f"isolation_variable must look like 'prefix.name', got: '{value}'"
            )
        return value

    @property
    def transaction_scoped(self) -> bool:
        """Whether the binding is released automatically at transaction end."""
        return self.binding_mode == "transaction"


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Tag Service API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()

    @property
    def tenancy(self) -> TenancySettings:
        """Get tenancy settings."""
        return get_tenancy_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_tenancy_settings() -> TenancySettings:
    """Get cached tenancy settings."""
    return TenancySettings()
