"""Unit tests for the tenant context middleware and FastAPI dependencies."""

from __future__ import annotations

import threading
from typing import Annotated

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from tenancy.application.unit_of_work import current_tenant_context
from tenancy.dependencies import (
    TenantContextMiddleware,
    get_tenant_context,
    require_tenant,
)
from tenancy.domain.context import TenantContext
from tenancy.infrastructure.resolvers import ChainTenantResolver, HeaderTenantResolver


def build_app(resolver, settings) -> FastAPI:
    app = FastAPI()
    app.add_middleware(TenantContextMiddleware, resolver=resolver, settings=settings)

    @app.get("/api/orders")
    def list_orders(tenant_id: Annotated[object, Depends(require_tenant)]):
        return {"tenant_id": tenant_id}

    @app.get("/api/context-id")
    def context_id(context: Annotated[TenantContext, Depends(get_tenant_context)]):
        return {"id": id(context)}

    @app.get("/public/ping")
    def ping():
        context = current_tenant_context()
        return {"bound": context is not None, "resolved": context.is_resolved}

    return app


@pytest.fixture
def header_settings(tenancy_settings):
    """Settings trusting the tenant header on /api routes."""
    return tenancy_settings.model_copy(
        update={"header_routes": ["/api/*"], "excluded_routes": ["/public/*"]}
    )


@pytest.fixture
def client(header_settings, mock_resolution_probe) -> TestClient:
    """Client for an app resolving tenants from the header."""
    resolver = ChainTenantResolver(
        [HeaderTenantResolver.from_settings(header_settings, probe=mock_resolution_probe)],
        probe=mock_resolution_probe,
    )
    return TestClient(build_app(resolver, header_settings))


class TestTenantContextMiddleware:
    """Tests for per-request units of work."""

    def test_resolves_tenant_from_header(self, client):
        """A valid header should reach the endpoint as the tenant."""
        response = client.get("/api/orders", headers={"X-Tenant-ID": "42"})

        assert response.status_code == 200
        assert response.json() == {"tenant_id": 42}

    def test_missing_tenant_is_rejected(self, client):
        """A required tenant that cannot be resolved should give 400."""
        response = client.get("/api/orders")

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Unable to resolve tenant. No resolver returned a valid tenant ID."
        }

    def test_invalid_header_is_rejected(self, client, mock_resolution_probe):
        """A malformed header should count as no tenant."""
        response = client.get("/api/orders", headers={"X-Tenant-ID": "-5"})

        assert response.status_code == 400
        mock_resolution_probe.invalid_header_value.assert_called_once()

    def test_excluded_routes_skip_resolution(self, client):
        """Excluded routes should get a context that was never resolved."""
        response = client.get("/public/ping")

        assert response.status_code == 200
        assert response.json() == {"bound": True, "resolved": False}

    def test_each_request_gets_its_own_context(self, client):
        """Tenants should never leak between requests."""
        first = client.get("/api/orders", headers={"X-Tenant-ID": "1"})
        second = client.get("/api/orders", headers={"X-Tenant-ID": "2"})
        third = client.get("/api/orders")

        assert first.json() == {"tenant_id": 1}
        assert second.json() == {"tenant_id": 2}
        assert third.status_code == 400

    def test_resolution_runs_off_the_event_loop(self, header_settings):
        """Blocking resolvers should not run on the event loop thread."""
        threads = {}

        class RecordingResolver:
            def resolve_identifier(self):
                threads["resolver"] = threading.get_ident()
                return 3

        app = FastAPI()
        app.add_middleware(
            TenantContextMiddleware,
            resolver=RecordingResolver(),
            settings=header_settings,
        )

        @app.get("/api/loop")
        async def loop_thread(
            tenant_id: Annotated[object, Depends(require_tenant)],
        ):
            threads["loop"] = threading.get_ident()
            return {"tenant_id": tenant_id}

        response = TestClient(app).get("/api/loop")

        assert response.json() == {"tenant_id": 3}
        assert threads["resolver"] != threads["loop"]

    def test_optional_tenant(self, header_settings, make_resolver):
        """With require_tenant disabled the request should proceed."""
        settings = header_settings.model_copy(update={"require_tenant": False})
        app = build_app(make_resolver(tenant_id=None), settings)

        response = TestClient(app).get("/api/context-id")

        assert response.status_code == 200

    def test_require_tenant_dependency_rejects(self, header_settings, make_resolver):
        """require_tenant should reject requests without tenant."""
        settings = header_settings.model_copy(update={"require_tenant": False})
        app = build_app(make_resolver(tenant_id=None), settings)

        response = TestClient(app).get("/api/orders")

        assert response.status_code == 400


class TestTenantDependencies:
    """Tests for the FastAPI dependencies without middleware."""

    def test_context_unavailable_without_middleware(self):
        """Using the dependency without the middleware should be a server error."""
        app = FastAPI()

        @app.get("/x")
        def endpoint(context: Annotated[TenantContext, Depends(get_tenant_context)]):
            return {}

        response = TestClient(app).get("/x")

        assert response.status_code == 500
