"""Tenant resolution from the shared user session.

Services share a session/access record that carries the tenant the user
is acting for. The session is obtained either from a host-provided
callable (for example one returning the authenticated identity) or by
looking it up through the identifier in a request header.

Resolution flow:
1. ``session_provider()`` returns a session → use it
2. Otherwise read the session identifier header and look the session up
   (no request or no header → None)
3. Read the configured tenant field from the session (mapping key or
   attribute); a missing or empty value → None
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from tenancy.application.unit_of_work import current_request
from tenancy.domain.observability import (
    DefaultTenantResolutionProbe,
    TenantResolutionProbe,
)
from tenancy.domain.value_objects import DEFAULT_TENANT_COLUMN, TenantId

if TYPE_CHECKING:
    from starlette.requests import Request

    from infrastructure.settings import TenancySettings
    from tenancy.ports.resolvers import SessionLookup


class UserSessionTenantResolver:
    """Resolve the tenant identifier recorded on the user's session."""

    name = "user_session"

    def __init__(
        self,
        session_lookup: SessionLookup | None = None,
        session_provider: Callable[[], Any | None] | None = None,
        session_id_header: str | None = "X-Session-Id",
        tenant_field: str = DEFAULT_TENANT_COLUMN,
        request_provider: Callable[[], Request | None] = current_request,
        probe: TenantResolutionProbe | None = None,
    ):
        self._session_lookup = session_lookup
        self._session_provider = session_provider
        self._session_id_header = session_id_header
        self._tenant_field = tenant_field
        self._request_provider = request_provider
        self._probe = probe or DefaultTenantResolutionProbe()

    @classmethod
    def from_settings(
        cls,
        settings: TenancySettings,
        session_lookup: SessionLookup | None = None,
        session_provider: Callable[[], Any | None] | None = None,
        probe: TenantResolutionProbe | None = None,
    ) -> UserSessionTenantResolver:
        """Build a resolver from tenancy settings."""
        return cls(
            session_lookup=session_lookup,
            session_provider=session_provider,
            session_id_header=settings.session_id_header,
            tenant_field=settings.resolved_session_tenant_column,
            probe=probe,
        )

    def resolve_identifier(self) -> TenantId | None:
        """Return the tenant recorded on the session, or None."""
        try:
            session = self._session_from_provider()
            if session is None:
                session = self._session_from_lookup()
            if session is None:
                return None
            return self._tenant_id_from_session(session)
        except Exception as e:
            self._probe.resolver_failed(resolver=self.name, error=e)
            return None

    def _session_from_provider(self) -> Any | None:
        if self._session_provider is None:
            return None
        return self._session_provider()

    def _session_from_lookup(self) -> Any | None:
        if self._session_lookup is None or not self._session_id_header:
            return None

        request = self._request_provider()
        if request is None:
            return None

        identifier = request.headers.get(self._session_id_header)
        if not identifier:
            return None

        return self._session_lookup.find_session(identifier)

    def _tenant_id_from_session(self, session: Any) -> TenantId | None:
        if isinstance(session, Mapping):
            tenant_id = session.get(self._tenant_field)
        else:
            tenant_id = getattr(session, self._tenant_field, None)

        # Empty strings and zero are treated as "no tenant"
        return tenant_id or None
