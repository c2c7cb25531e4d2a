"""Unit tests for the ORM isolation predicate builder."""

from __future__ import annotations

import pytest
from sqlalchemy import delete, select, update
from sqlalchemy.orm import aliased

from tenancy.domain.context import TenantContext
from tenancy.infrastructure.query_auditor import TenantQueryAuditor
from tenancy.infrastructure.registry import TenantTableRegistry
from tenancy.infrastructure.scope import (
    for_tenant,
    install_tenant_scope,
    remove_tenant_scope,
    without_tenant_scope,
)


class MutableContextProvider:
    """Context provider whose context can be swapped between statements."""

    def __init__(self, context: TenantContext | None = None):
        self.context = context

    def __call__(self) -> TenantContext | None:
        return self.context


@pytest.fixture
def provider(make_resolver) -> MutableContextProvider:
    """Provider starting with tenant 1."""
    return MutableContextProvider(TenantContext(make_resolver(tenant_id=1)))


@pytest.fixture
def scoped_factory(session_factory, orm_models, provider):
    """Sessionmaker with tenant scope installed and seeded rows."""
    registry = TenantTableRegistry.from_base(orm_models.Base)

    with session_factory() as session:
        session.add_all(
            [
                orm_models.Order(id=1, tenant_id=1, label="a"),
                orm_models.Order(id=2, tenant_id=1, label="b"),
                orm_models.Order(id=3, tenant_id=2, label="c"),
                orm_models.Invoice(id=1, organization_id=1, amount=10),
                orm_models.Invoice(id=2, organization_id=2, amount=20),
                orm_models.Country(id=1, tenant_id=2, name="Jordan"),
            ]
        )
        session.commit()

    installer = install_tenant_scope(session_factory, registry, context_provider=provider)
    yield session_factory
    remove_tenant_scope(session_factory, installer)


def labels(session, stmt) -> list[str]:
    return sorted(order.label for order in session.scalars(stmt))


class TestReadScoping:
    """Tests for predicates added to ORM reads."""

    def test_select_is_scoped(self, scoped_factory, orm_models):
        """Only the current tenant's rows should be visible."""
        with scoped_factory() as session:
            assert labels(session, select(orm_models.Order)) == ["a", "b"]

    def test_get_by_primary_key_is_scoped(self, scoped_factory, orm_models):
        """Another tenant's row should not be loadable by id."""
        with scoped_factory() as session:
            assert session.get(orm_models.Order, 3) is None

    def test_custom_tenant_column(self, scoped_factory, orm_models):
        """Models with their own tenant column should be filtered on it."""
        with scoped_factory() as session:
            amounts = session.scalars(select(orm_models.Invoice.amount)).all()

        assert amounts == [10]

    def test_aliases_are_scoped(self, scoped_factory, orm_models):
        """Aliased entities should receive the predicate too."""
        order_alias = aliased(orm_models.Order)

        with scoped_factory() as session:
            rows = session.scalars(select(order_alias)).all()

        assert sorted(row.label for row in rows) == ["a", "b"]

    def test_exempt_model_not_scoped(self, scoped_factory, orm_models):
        """Exempt models should be visible regardless of tenant."""
        with scoped_factory() as session:
            names = session.scalars(select(orm_models.Country.name)).all()

        assert names == ["Jordan"]

    def test_no_tenant_means_no_predicate(self, scoped_factory, orm_models, provider):
        """Without a tenant the statement should run unchanged."""
        provider.context = None

        with scoped_factory() as session:
            assert labels(session, select(orm_models.Order)) == ["a", "b", "c"]

    def test_follows_context_changes(self, scoped_factory, orm_models, provider):
        """The predicate should use the tenant at execution time."""
        with scoped_factory() as session:
            context = provider.context
            with context.using_tenant(2):
                assert labels(session, select(orm_models.Order)) == ["c"]
            assert labels(session, select(orm_models.Order)) == ["a", "b"]


class TestBypass:
    """Tests for explicit opt-outs."""

    def test_without_tenant_scope(self, scoped_factory, orm_models):
        """An unscoped statement should see every tenant's rows."""
        with scoped_factory() as session:
            stmt = without_tenant_scope(select(orm_models.Order))
            assert labels(session, stmt) == ["a", "b", "c"]

    def test_for_tenant(self, scoped_factory, orm_models):
        """for_tenant should scope to the given tenant instead of the context."""
        with scoped_factory() as session:
            stmt = for_tenant(select(orm_models.Order), 2)
            assert labels(session, stmt) == ["c"]

    def test_removed_scope(self, session_factory, orm_models, provider):
        """After removal statements should no longer be scoped."""
        registry = TenantTableRegistry.from_models([orm_models.Order])
        installer = install_tenant_scope(session_factory, registry, provider)
        remove_tenant_scope(session_factory, installer)

        with session_factory() as session:
            session.add(orm_models.Order(id=9, tenant_id=5, label="z"))
            session.flush()
            assert labels(session, select(orm_models.Order)) == ["z"]


class TestWriteScoping:
    """Tests for bulk writes and tenant auto-assignment."""

    def test_bulk_update_is_scoped(self, scoped_factory, orm_models):
        """ORM bulk UPDATE should only touch the current tenant's rows."""
        with scoped_factory() as session:
            session.execute(
                update(orm_models.Order).values(label="x"),
                execution_options={"synchronize_session": False},
            )
            session.commit()

            stmt = without_tenant_scope(select(orm_models.Order))
            assert labels(session, stmt) == ["c", "x", "x"]

    def test_bulk_delete_is_scoped(self, scoped_factory, orm_models):
        """ORM bulk DELETE should only remove the current tenant's rows."""
        with scoped_factory() as session:
            session.execute(
                delete(orm_models.Order),
                execution_options={"synchronize_session": False},
            )
            session.commit()

            stmt = without_tenant_scope(select(orm_models.Order))
            assert labels(session, stmt) == ["c"]

    def test_new_rows_get_current_tenant(self, scoped_factory, orm_models):
        """New tenant-owned rows should be stamped with the current tenant."""
        with scoped_factory() as session:
            order = orm_models.Order(id=10, label="new")
            invoice = orm_models.Invoice(id=10, amount=5)
            session.add_all([order, invoice])
            session.flush()

            assert order.tenant_id == 1
            assert invoice.organization_id == 1

    def test_existing_value_not_overwritten(self, scoped_factory, orm_models):
        """An explicitly set tenant should be kept."""
        with scoped_factory() as session:
            order = orm_models.Order(id=11, tenant_id=2, label="other")
            session.add(order)
            session.flush()

            assert order.tenant_id == 2

    def test_exempt_rows_not_stamped(self, scoped_factory, orm_models):
        """Exempt models should not be auto-assigned."""
        with scoped_factory() as session:
            country = orm_models.Country(id=2, name="Peru")
            session.add(country)
            session.flush()

            assert country.tenant_id is None

    def test_no_tenant_leaves_rows_unassigned(self, scoped_factory, orm_models, provider):
        """Without a tenant nothing should be assigned."""
        provider.context = None

        with scoped_factory() as session:
            order = orm_models.Order(id=12, label="orphan")
            session.add(order)
            session.flush()

            assert order.tenant_id is None


@pytest.fixture
def audited_factory(
    scoped_factory, sqlite_engine, orm_models, provider, mock_audit_probe
):
    """Scoped sessionmaker whose engine is also audited."""
    auditor = TenantQueryAuditor(
        TenantTableRegistry.from_base(orm_models.Base),
        context_provider=provider,
        probe=mock_audit_probe,
    )
    auditor.install(sqlite_engine)
    yield scoped_factory
    auditor.uninstall(sqlite_engine)


class TestScopedStatementsPassAudit:
    """Tests that ORM statements produced under tenant scope are not flagged."""

    def test_reads_are_not_flagged(self, audited_factory, orm_models, mock_audit_probe):
        """Scoped selects, primary key loads and custom columns should pass."""
        with audited_factory() as session:
            session.scalars(select(orm_models.Order)).all()
            session.get(orm_models.Order, 1)
            session.scalars(select(orm_models.Invoice)).all()
            session.scalars(select(orm_models.Country)).all()

        mock_audit_probe.missing_tenant_filter.assert_not_called()

    def test_unit_of_work_writes_are_not_flagged(
        self, audited_factory, orm_models, mock_audit_probe
    ):
        """Flushed inserts, updates and deletes should pass."""
        with audited_factory() as session:
            session.add(orm_models.Order(id=20, label="new"))
            session.flush()

            order = session.get(orm_models.Order, 1)
            order.label = "renamed"
            session.flush()

            session.delete(order)
            session.commit()

        mock_audit_probe.missing_tenant_filter.assert_not_called()

    def test_bulk_writes_are_not_flagged(
        self, audited_factory, orm_models, mock_audit_probe
    ):
        """Bulk updates and deletes should carry the tenant predicate."""
        with audited_factory() as session:
            session.execute(
                update(orm_models.Order).values(label="x"),
                execution_options={"synchronize_session": False},
            )
            session.execute(
                delete(orm_models.Invoice),
                execution_options={"synchronize_session": False},
            )
            session.commit()

        mock_audit_probe.missing_tenant_filter.assert_not_called()

    def test_bypassed_statement_is_flagged(
        self, audited_factory, orm_models, mock_audit_probe
    ):
        """An unscoped read inside a tenant unit of work should be reported."""
        with audited_factory() as session:
            session.scalars(select(orm_models.Order)).all()
            session.scalars(without_tenant_scope(select(orm_models.Order))).all()

        mock_audit_probe.missing_tenant_filter.assert_called_once()
        finding = mock_audit_probe.missing_tenant_filter.call_args.args[0]
        assert finding.table == "orders"
        assert finding.tenant_id == 1
