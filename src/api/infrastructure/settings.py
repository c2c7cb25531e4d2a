"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Environment variables:
        TENANT_GUARD_DB_HOST: Database host (default: localhost)
        TENANT_GUARD_DB_PORT: Database port (default: 5432)
        TENANT_GUARD_DB_DATABASE: Database name (default: tenant_guard)
        TENANT_GUARD_DB_USERNAME: Database user (default: tenant_guard)
        TENANT_GUARD_DB_PASSWORD: Database password (required in production)
        TENANT_GUARD_DB_CONNECTION_NAME: Label reported with audit findings
        TENANT_GUARD_DB_POOL_MAX_CONNECTIONS: Maximum connections in pool (default: 10)
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANT_GUARD_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    database: str = Field(default="tenant_guard", description="Database name")
    username: str = Field(default="tenant_guard", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    connection_name: str = Field(
        default="default",
        description="Connection label included in query audit findings",
    )
    pool_max_connections: int = Field(
        default=10,
        description="Maximum connections in pool",
        ge=1,
        le=100,
    )


class TenancySettings(BaseSettings):
    """Tenant resolution and isolation settings.

    Environment variables:
        TENANCY_TENANT_COLUMN: Default tenant column on scoped tables (default: tenant_id)
        TENANCY_TABLES: Extra tenant-owned table names without an ORM model
        TENANCY_EXCLUDED_ROUTES: Path patterns that skip tenant resolution
        TENANCY_REQUIRE_TENANT: Reject requests whose tenant cannot be resolved
        TENANCY_HEADER_NAME: Header read by the header resolver (default: X-Tenant-ID)
        TENANCY_HEADER_ROUTES: Path/route-name patterns where the header is trusted
        TENANCY_HEADER_FORMAT: Accepted header value format, integer or ulid
        TENANCY_SESSION_ID_HEADER: Header carrying the session identifier
        TENANCY_SESSION_TENANT_COLUMN: Tenant field on the session record
        TENANCY_DOMAIN_COLUMN: Domain column on the tenant model (default: domain)
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tenant_column: str = Field(
        default="tenant_id",
        description="Default tenant column name on tenant-owned tables",
        min_length=1,
    )
    tables: list[str] = Field(
        default_factory=list,
        description="Tenant-owned tables audited in addition to mapped models",
    )
    excluded_routes: list[str] = Field(
        default_factory=list,
        description="Request paths (wildcards allowed) that bypass resolution",
    )
    require_tenant: bool = Field(
        default=True,
        description="Respond 400 when a non-excluded request has no tenant",
    )
    header_name: str = Field(default="X-Tenant-ID", description="Tenant header")
    header_routes: list[str] = Field(
        default_factory=list,
        description="Routes where the tenant header is honoured; empty disables it",
    )
    header_format: Literal["integer", "ulid"] = Field(
        default="integer",
        description="Validation applied to the tenant header value",
    )
    session_id_header: str | None = Field(
        default="X-Session-Id",
        description="Header carrying the shared session identifier",
    )
    session_id_column: str = Field(
        default="id",
        description="Identifier column on the session model",
    )
    session_tenant_column: str | None = Field(
        default=None,
        description="Tenant field on the session record (defaults to tenant_column)",
    )
    domain_column: str = Field(
        default="domain",
        description="Column on the tenant model holding its domain",
    )

    @field_validator("tables", "excluded_routes", "header_routes")
    @classmethod
    def strip_blank_entries(cls, value: list[str]) -> list[str]:
        """Drop empty entries and surrounding whitespace."""
        return [item.strip() for item in value if item and item.strip()]

    @property
    def resolved_session_tenant_column(self) -> str:
        """Tenant field read from the session, falling back to tenant_column."""
        return self.session_tenant_column or self.tenant_column


class QueryAuditorSettings(BaseSettings):
    """Runtime query auditor settings.

    Environment variables:
        TENANCY_QUERY_AUDITOR_ENABLED: Enable the auditor (default: true)
        TENANCY_QUERY_AUDITOR_LOG_CHANNEL: structlog logger name for findings
        TENANCY_QUERY_AUDITOR_PRIMARY_KEYS: Columns whose equality makes
            UPDATE/DELETE bypass-safe (default: ["id", "uuid"])
    """

    model_config = SettingsConfigDict(
        env_prefix="TENANCY_QUERY_AUDITOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = Field(default=True, description="Enable the query auditor")
    log_channel: str | None = Field(
        default=None,
        description="Logger name for audit findings; None uses the default logger",
    )
    primary_keys: list[str] = Field(
        default_factory=lambda: ["id", "uuid"],
        description="Primary-key columns treated as bypass-safe",
    )

    @field_validator("primary_keys")
    @classmethod
    def require_primary_keys(cls, value: list[str]) -> list[str]:
        """Normalise primary key names."""
        return [item.strip() for item in value if item and item.strip()]


class Settings(BaseSettings):
    """Application-wide settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Tenant Guard", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")


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


@lru_cache
def get_query_auditor_settings() -> QueryAuditorSettings:
    """Get cached query auditor settings."""
    return QueryAuditorSettings()
