"""Database dependency injection for FastAPI.

Provides the application's async engine and tenant-scoped sessions. The
engine carries the query auditor; sessions carry the isolation predicate
builder. Both are driven by the tenant table registry, which host
applications configure once at startup with their declarative base.
"""

from __future__ import annotations

import threading
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session

from infrastructure.database.engines import create_engine
from infrastructure.settings import get_database_settings, get_tenancy_settings
from tenancy.infrastructure.query_auditor import TenantQueryAuditor
from tenancy.infrastructure.registry import TenantTableRegistry
from tenancy.infrastructure.scope import (
    TenantScopeInstaller,
    install_tenant_scope,
    remove_tenant_scope,
)


class TenantSession(Session):
    """Sync session class behind every async session; tenant scope attaches here."""


# Module-level instances (created on first use)
_registry: TenantTableRegistry | None = None
_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None
_scope_installer: TenantScopeInstaller | None = None

# Thread lock for safe engine initialization
_engine_lock = threading.Lock()


def configure_tenant_tables(registry: TenantTableRegistry) -> None:
    """Set the tenant table registry used by the engine and sessions.

    Must be called before the first ``get_engine()``; later calls only take
    effect after ``close_database_connections()``.
    """
    global _registry
    _registry = registry


def get_tenant_table_registry() -> TenantTableRegistry:
    """Get the configured registry, or one built from ``TENANCY_TABLES``."""
    if _registry is None:
        return TenantTableRegistry(get_tenancy_settings().tables)
    return _registry


def get_engine() -> AsyncEngine:
    """Get the database engine (singleton).

    Creates the engine, its auditor and the tenant-scoped sessionmaker on
    first call. Uses double-check locking for thread-safe initialization.
    """
    global _engine, _sessionmaker, _scope_installer
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                registry = get_tenant_table_registry()
                auditor = TenantQueryAuditor.from_settings(registry)
                _engine = create_engine(get_database_settings(), auditor=auditor)
                _scope_installer = install_tenant_scope(TenantSession, registry)
                _sessionmaker = async_sessionmaker(
                    _engine,
                    expire_on_commit=False,
                    class_=AsyncSession,
                    sync_session_class=TenantSession,
                )
    return _engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a tenant-scoped session (FastAPI dependency).

    The session does not auto-commit. Callers manage transactions with
    ``async with session.begin()``.

    Yields:
        AsyncSession for database operations
    """
    get_engine()
    assert _sessionmaker is not None

    async with _sessionmaker() as session:
        yield session


async def close_database_connections() -> None:
    """Dispose the engine and detach tenant scoping.

    Should be called on application shutdown. Allows reinitialization.
    """
    global _engine, _sessionmaker, _scope_installer

    if _scope_installer is not None:
        remove_tenant_scope(TenantSession, _scope_installer)
        _scope_installer = None

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None
