"""Unit tests for the tenant table registry, route patterns and lookups."""

from __future__ import annotations

import pytest

from tenancy.infrastructure.lookups import SqlSessionLookup, SqlTenantDomainLookup
from tenancy.infrastructure.registry import RegisteredTable, TenantTableRegistry
from tenancy.infrastructure.route_patterns import matches_any, matches_pattern


class TestTenantTableRegistry:
    """Tests for building and querying the registry."""

    def test_from_base_registers_tenant_scoped_models(self, orm_models):
        """Only TenantScoped models should be picked up from the base."""
        registry = TenantTableRegistry.from_base(orm_models.Base)

        assert "orders" in registry
        assert "invoices" in registry
        assert "countries" in registry
        assert "tenants" not in registry
        assert "user_sessions" not in registry

    def test_exemption_and_columns_come_from_owner(self, orm_models):
        """Entries should report the owner's exemption and tenant column."""
        registry = TenantTableRegistry.from_models(
            [orm_models.Order, orm_models.Invoice, orm_models.Country]
        )

        assert registry.get("countries").exempt is True
        assert registry.get("orders").exempt is False
        assert registry.get("orders").tenant_column("tenant_id") == "tenant_id"
        assert registry.get("invoices").tenant_column("tenant_id") == "organization_id"

    def test_scoped_models_excludes_exempt(self, orm_models):
        """Exempt owners should not receive predicates."""
        registry = TenantTableRegistry.from_base(orm_models.Base)

        assert set(registry.scoped_models()) == {orm_models.Order, orm_models.Invoice}

    def test_plain_table_names(self):
        """Tables without owner should use the default column and never be exempt."""
        registry = TenantTableRegistry(["ledger"])
        entry = registry.get("ledger")

        assert entry == RegisteredTable(table="ledger")
        assert entry.exempt is False
        assert entry.tenant_column("tenant_id") == "tenant_id"
        assert registry.scoped_models() == []

    def test_with_tables_keeps_owners(self, orm_models):
        """Merging names should not drop existing owners."""
        registry = TenantTableRegistry.from_models([orm_models.Order])

        merged = registry.with_tables(["orders", "ledger"])

        assert merged.get("orders").owner is orm_models.Order
        assert [entry.table for entry in merged] == ["orders", "ledger"]
        assert len(merged) == 2
        assert len(registry) == 1


class TestRoutePatterns:
    """Tests for route wildcard matching."""

    @pytest.mark.parametrize(
        ("value", "pattern", "expected"),
        [
            ("/health", "/health", True),
            ("/api/orders/7", "/api/*", True),
            ("orders.show", "orders.*", True),
            ("/apiv2", "/api/*", False),
            ("/health/db", "/health", False),
            ("a.b", "a?b", False),
        ],
    )
    def test_matches_pattern(self, value, pattern, expected):
        """Patterns should match exactly or through wildcards."""
        assert matches_pattern(value, pattern) is expected

    def test_matches_any_ignores_empty_values(self):
        """Empty values should never match."""
        assert matches_any(None, ["*"]) is False
        assert matches_any("", ["*"]) is False
        assert matches_any("/x", ["/y", "/x"]) is True


class TestSqlLookups:
    """Tests for the SQLAlchemy lookup implementations."""

    def test_domain_lookup(self, session_factory, orm_models):
        """The tenant owning a domain should be found by id."""
        with session_factory() as session:
            session.add(orm_models.Tenant(id=5, domain="acme.example.com"))
            session.commit()

        lookup = SqlTenantDomainLookup(session_factory, orm_models.Tenant)

        assert lookup.find_tenant_id_by_domain("acme.example.com") == 5
        assert lookup.find_tenant_id_by_domain("other.example.com") is None

    def test_session_lookup(self, session_factory, orm_models, tenancy_settings):
        """The session record should be loaded by identifier."""
        with session_factory() as session:
            session.add(orm_models.UserSession(id="s-1", tenant_id=3))
            session.commit()

        lookup = SqlSessionLookup.from_settings(
            session_factory, orm_models.UserSession, settings=tenancy_settings
        )

        assert lookup.find_session("s-1").tenant_id == 3
        assert lookup.find_session("missing") is None
