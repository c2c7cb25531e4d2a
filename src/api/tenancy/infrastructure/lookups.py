"""SQLAlchemy implementations of the resolver lookup ports.

Both lookups open a short-lived session per call and run without tenant
predicates: they are what establishes the tenant in the first place.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from infrastructure.settings import get_tenancy_settings
from tenancy.domain.value_objects import TenantId
from tenancy.infrastructure.scope import without_tenant_scope

if TYPE_CHECKING:
    from infrastructure.settings import TenancySettings


class SqlTenantDomainLookup:
    """Find a tenant id by host name in a tenants table.

    Args:
        session_factory: Callable returning a new ``Session``.
        tenant_model: Mapped class of the tenants table.
        domain_column: Attribute holding the host name.
        id_column: Attribute holding the tenant id.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        tenant_model: type,
        domain_column: str = "domain",
        id_column: str = "id",
    ):
        self._session_factory = session_factory
        self._tenant_model = tenant_model
        self._domain_column = domain_column
        self._id_column = id_column

    @classmethod
    def from_settings(
        cls,
        session_factory: Callable[[], Session],
        tenant_model: type,
        settings: TenancySettings | None = None,
    ) -> SqlTenantDomainLookup:
        settings = settings or get_tenancy_settings()
        return cls(session_factory, tenant_model, domain_column=settings.domain_column)

    def find_tenant_id_by_domain(self, domain: str) -> TenantId | None:
        stmt = without_tenant_scope(
            select(getattr(self._tenant_model, self._id_column))
            .where(getattr(self._tenant_model, self._domain_column) == domain)
            .limit(1)
        )
        with self._session_factory() as session:
            return session.scalars(stmt).first()


class SqlSessionLookup:
    """Load a user session row by its identifier.

    The returned model instance is read by ``UserSessionTenantResolver``
    through attribute access.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        session_model: type,
        id_column: str = "id",
    ):
        self._session_factory = session_factory
        self._session_model = session_model
        self._id_column = id_column

    @classmethod
    def from_settings(
        cls,
        session_factory: Callable[[], Session],
        session_model: type,
        settings: TenancySettings | None = None,
    ) -> SqlSessionLookup:
        settings = settings or get_tenancy_settings()
        return cls(session_factory, session_model, id_column=settings.session_id_column)

    def find_session(self, identifier: str) -> Any | None:
        stmt = without_tenant_scope(
            select(self._session_model)
            .where(getattr(self._session_model, self._id_column) == identifier)
            .limit(1)
        )
        with self._session_factory() as session:
            return session.scalars(stmt).first()
