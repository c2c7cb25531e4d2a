"""Tenant resolution from the request host name.

Resolution flow:
1. No current request → None
2. Request carries no host name → None
3. Owner lookup by domain (any lookup failure → None)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from tenancy.application.unit_of_work import current_request
from tenancy.domain.observability import (
    DefaultTenantResolutionProbe,
    TenantResolutionProbe,
)
from tenancy.domain.value_objects import TenantId

if TYPE_CHECKING:
    from starlette.requests import Request

    from tenancy.ports.resolvers import TenantDomainLookup


class DomainTenantResolver:
    """Resolve the tenant that owns the domain the request was sent to."""

    name = "domain"

    def __init__(
        self,
        lookup: TenantDomainLookup,
        request_provider: Callable[[], Request | None] = current_request,
        probe: TenantResolutionProbe | None = None,
    ):
        self._lookup = lookup
        self._request_provider = request_provider
        self._probe = probe or DefaultTenantResolutionProbe()

    def resolve_identifier(self) -> TenantId | None:
        """Return the domain owner's identifier, or None."""
        try:
            request = self._request_provider()
            if request is None:
                return None

            domain = request.url.hostname
            if not domain:
                return None

            return self._lookup.find_tenant_id_by_domain(domain.lower())
        except Exception as e:
            self._probe.resolver_failed(resolver=self.name, error=e)
            return None
