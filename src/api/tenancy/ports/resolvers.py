"""Ports consumed by tenant resolution.

Resolvers are the strategies a tenant context delegates to; lookups are
the persistence-facing collaborators some resolvers need. Both are
structural protocols so host applications can plug in their own.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from tenancy.domain.value_objects import TenantId


@runtime_checkable
class TenantResolver(Protocol):
    """Strategy answering "which tenant owns the current unit of work?".

    Implementations must never raise: internal failures are translated to
    None so that a failing strategy never blocks a later one. They must
    also return None when the ambient input they need (for example an HTTP
    request) does not exist.
    """

    def resolve_identifier(self) -> TenantId | None:
        """Return the tenant identifier, or None when unknown."""
        ...


class TenantDomainLookup(Protocol):
    """Finds the tenant that owns a network host name."""

    def find_tenant_id_by_domain(self, domain: str) -> TenantId | None:
        """Return the owning tenant's identifier, or None if no tenant matches."""
        ...


class SessionLookup(Protocol):
    """Loads a shared session/identity record by its identifier."""

    def find_session(self, identifier: str) -> Any | None:
        """Return the session record, or None if it does not exist."""
        ...
