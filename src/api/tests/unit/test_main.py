"""Unit tests for the FastAPI application factory."""

from __future__ import annotations

from types import SimpleNamespace

from fastapi.testclient import TestClient

from main import PUBLIC_ROUTES, create_app


class TestCreateApp:
    """Tests for the wired application."""

    def test_health_needs_no_tenant(self, tenancy_settings, make_resolver):
        """The health route should be public."""
        app = create_app(make_resolver(tenant_id=None), tenancy_settings)

        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_tenant_route_returns_resolved_tenant(self, tenancy_settings, make_resolver):
        """The tenant route should echo the resolved tenant."""
        app = create_app(make_resolver(tenant_id=12), tenancy_settings)

        response = TestClient(app).get("/tenant")

        assert response.json() == {"tenant_id": 12}

    def test_tenant_route_requires_tenant(self, tenancy_settings, make_resolver):
        """Without a tenant the middleware should reject the request."""
        app = create_app(make_resolver(tenant_id=None), tenancy_settings)

        response = TestClient(app).get("/tenant")

        assert response.status_code == 400

    def test_session_header_resolves_through_default_chain(self, tenancy_settings):
        """A session lookup passed to the factory should resolve the tenant."""
        sessions = {"sess-1": {"tenant_id": 12}}
        lookup = SimpleNamespace(find_session=sessions.get)
        app = create_app(tenancy_settings=tenancy_settings, session_lookup=lookup)
        client = TestClient(app)

        assert client.get("/tenant", headers={"X-Session-Id": "sess-1"}).json() == {
            "tenant_id": 12
        }
        assert client.get("/tenant", headers={"X-Session-Id": "other"}).status_code == 400

    def test_public_routes_are_excluded(self):
        """Documentation and health routes should be public."""
        assert "/health" in PUBLIC_ROUTES
        assert "/openapi.json" in PUBLIC_ROUTES
