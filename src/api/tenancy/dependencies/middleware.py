"""ASGI middleware opening one tenant unit of work per HTTP request.

Every HTTP request gets a fresh ``TenantContext`` bound for its whole
lifetime, including the endpoint, its dependencies and any database
events fired while it runs. The context is cleared and unbound when the
response has been sent.

For routes not matching ``excluded_routes`` the tenant is resolved before
the application runs, in the threadpool, so synchronous lookups never
block the event loop. When resolution yields no tenant and
``require_tenant`` is enabled, the request is answered with 400.

Usage:
    app.add_middleware(
        TenantContextMiddleware,
        resolver=ChainTenantResolver(),
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from fastapi import status
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse

from infrastructure.settings import get_tenancy_settings
from tenancy.application.unit_of_work import tenant_unit_of_work
from tenancy.domain.exceptions import TenantNotResolvedError
from tenancy.infrastructure.route_patterns import matches_any

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send

    from infrastructure.settings import TenancySettings
    from tenancy.domain.observability import TenantResolutionProbe
    from tenancy.ports.resolvers import TenantResolver


class TenantContextMiddleware:
    """Bind a tenant context to each HTTP request.

    Args:
        app: Downstream ASGI application.
        resolver: Resolver every request's context delegates to.
        settings: Tenancy settings; defaults to the cached settings.
        probe: Optional resolution probe for the contexts.
    """

    def __init__(
        self,
        app: ASGIApp,
        resolver: TenantResolver,
        settings: TenancySettings | None = None,
        probe: TenantResolutionProbe | None = None,
    ):
        self.app = app
        self._resolver = resolver
        self._settings = settings or get_tenancy_settings()
        self._probe = probe

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        with tenant_unit_of_work(
            self._resolver, request=request, probe=self._probe
        ) as context:
            if matches_any(request.url.path, self._settings.excluded_routes):
                await self.app(scope, receive, send)
                return

            # Resolvers may block on session or domain lookups
            tenant_id = await run_in_threadpool(context.get_identifier)
            if tenant_id is None and self._settings.require_tenant:
                response = JSONResponse(
                    {"detail": str(TenantNotResolvedError())},
                    status_code=status.HTTP_400_BAD_REQUEST,
                )
                await response(scope, receive, send)
                return

            with structlog.contextvars.bound_contextvars(tenant_id=tenant_id):
                await self.app(scope, receive, send)
