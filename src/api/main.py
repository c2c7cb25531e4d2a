"""Main FastAPI application entry point."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI

from infrastructure.database.dependencies import close_database_connections
from infrastructure.logging import configure_logging
from infrastructure.settings import TenancySettings, get_settings, get_tenancy_settings
from infrastructure.version import __version__
from tenancy.dependencies import TenantContextMiddleware, require_tenant
from tenancy.domain.value_objects import TenantId
from tenancy.infrastructure.resolvers import ChainTenantResolver
from tenancy.ports.resolvers import SessionLookup, TenantResolver

# Routes that never need a tenant
PUBLIC_ROUTES = ("/health", "/docs*", "/redoc*", "/openapi.json")


@asynccontextmanager
async def tenant_guard_lifespan(app: FastAPI):
    """Application lifespan context.

    Closes the database engine (created lazily) on shutdown.
    """
    yield
    await close_database_connections()


def create_app(
    resolver: TenantResolver | None = None,
    tenancy_settings: TenancySettings | None = None,
    session_lookup: SessionLookup | None = None,
    session_provider: Callable[[], Any | None] | None = None,
) -> FastAPI:
    """Build the application with per-request tenant contexts.

    Args:
        resolver: Resolver every request's tenant context delegates to.
            Defaults to the chain with its default strategies.
        tenancy_settings: Tenancy settings; defaults to the cached settings.
        session_lookup: Session store for the default chain's session
            resolver. Ignored when ``resolver`` is given.
        session_provider: Session source for the default chain's session
            resolver. Ignored when ``resolver`` is given.
    """
    settings = get_settings()
    configure_logging(debug=settings.debug)

    tenancy_settings = tenancy_settings or get_tenancy_settings()
    tenancy_settings = tenancy_settings.model_copy(
        update={
            "excluded_routes": [*tenancy_settings.excluded_routes, *PUBLIC_ROUTES],
        }
    )

    app = FastAPI(
        title=settings.app_name,
        description="Tenant identity resolution and row-level isolation",
        version=__version__,
        lifespan=tenant_guard_lifespan,
    )
    if resolver is None:
        resolver = ChainTenantResolver(
            settings=tenancy_settings,
            session_lookup=session_lookup,
            session_provider=session_provider,
        )

    app.add_middleware(
        TenantContextMiddleware,
        resolver=resolver,
        settings=tenancy_settings,
    )

    @app.get("/health")
    def health():
        """Basic health check endpoint."""
        return {"status": "ok"}

    @app.get("/tenant")
    def current_tenant(
        tenant_id: Annotated[TenantId, Depends(require_tenant)],
    ) -> dict:
        """Return the tenant resolved for this request."""
        return {"tenant_id": tenant_id}

    return app


app = create_app()
