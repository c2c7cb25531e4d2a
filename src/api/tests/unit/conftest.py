"""Unit test fixtures with mocked dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from infrastructure.settings import QueryAuditorSettings, TenancySettings
from tenancy.domain.observability import TenantResolutionProbe
from tenancy.infrastructure.mixins import TenantScoped
from tenancy.infrastructure.observability import QueryAuditProbe


@dataclass
class StaticResolver:
    """Resolver returning a fixed answer and counting its calls."""

    tenant_id: int | str | None = None
    calls: int = 0
    name: str = "static"

    def resolve_identifier(self):
        self.calls += 1
        return self.tenant_id


@dataclass
class FakeRequest:
    """Minimal stand-in for a Starlette request."""

    path: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    hostname: str | None = "acme.example.com"
    scope: dict = field(default_factory=dict)

    @property
    def url(self) -> SimpleNamespace:
        return SimpleNamespace(path=self.path, hostname=self.hostname)


@pytest.fixture
def make_resolver():
    """Factory for resolvers returning a fixed tenant."""
    return StaticResolver


@pytest.fixture
def make_request():
    """Factory for fake requests."""
    return FakeRequest


@pytest.fixture
def mock_resolution_probe() -> MagicMock:
    """Mock resolution probe for testing."""
    return MagicMock(spec=TenantResolutionProbe)


@pytest.fixture
def mock_audit_probe() -> MagicMock:
    """Mock query audit probe for testing."""
    return MagicMock(spec=QueryAuditProbe)


@pytest.fixture
def tenancy_settings() -> TenancySettings:
    """Tenancy settings isolated from the environment."""
    return TenancySettings(
        _env_file=None,
        tenant_column="tenant_id",
        tables=[],
        excluded_routes=[],
        require_tenant=True,
        header_routes=[],
    )


@pytest.fixture
def auditor_settings() -> QueryAuditorSettings:
    """Query auditor settings isolated from the environment."""
    return QueryAuditorSettings(_env_file=None, enabled=True, log_channel=None)


class Base(DeclarativeBase):
    pass


class Order(TenantScoped, Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int | None] = mapped_column(index=True)
    label: Mapped[str] = mapped_column(default="")


class Invoice(TenantScoped, Base):
    __tablename__ = "invoices"
    __tenant_column__ = "organization_id"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int | None] = mapped_column(index=True)
    amount: Mapped[int] = mapped_column(default=0)


class Country(TenantScoped, Base):
    __tablename__ = "countries"
    __tenant_exempt__ = True

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int | None] = mapped_column(default=None)
    name: Mapped[str] = mapped_column(default="")


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(primary_key=True)
    domain: Mapped[str] = mapped_column(unique=True)


class UserSession(Base):
    __tablename__ = "user_sessions"

    id: Mapped[str] = mapped_column(primary_key=True)
    tenant_id: Mapped[int | None] = mapped_column(default=None)


@pytest.fixture
def orm_models() -> SimpleNamespace:
    """Mapped test models sharing one declarative base."""
    return SimpleNamespace(
        Base=Base,
        Order=Order,
        Invoice=Invoice,
        Country=Country,
        Tenant=Tenant,
        UserSession=UserSession,
    )


@pytest.fixture
def sqlite_engine():
    """In-memory SQLite engine with the test schema."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine) -> sessionmaker:
    """Fresh sessionmaker bound to the SQLite engine."""
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)
