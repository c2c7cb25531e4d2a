"""Tenant resolution from a request header.

Useful for API routes where callers pass the tenant explicitly (for
example ``X-Tenant-ID``). The header is only honoured on configured
routes, and its value is validated before it is trusted.

Resolution flow:
1. No current request (console, background job) → None
2. Request path / route name not in the allowed routes → None
3. Header missing or empty → None
4. Value fails validation (positive integer, or ULID) → None
5. Otherwise the validated identifier
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Literal

from ulid import ULID

from tenancy.application.unit_of_work import current_request
from tenancy.domain.observability import (
    DefaultTenantResolutionProbe,
    TenantResolutionProbe,
)
from tenancy.domain.value_objects import TenantId
from tenancy.infrastructure.route_patterns import matches_any

if TYPE_CHECKING:
    from starlette.requests import Request

    from infrastructure.settings import TenancySettings

HeaderFormat = Literal["integer", "ulid"]

_POSITIVE_INTEGER = re.compile(r"[0-9]+", re.ASCII)


def parse_positive_integer(raw_value: str) -> int | None:
    """Parse a well-formed positive integer, or return None."""
    candidate = raw_value.strip()
    if not _POSITIVE_INTEGER.fullmatch(candidate):
        return None
    value = int(candidate)
    return value if value > 0 else None


def parse_ulid(raw_value: str) -> str | None:
    """Parse a ULID (case-insensitive) into its canonical upper-case form."""
    try:
        return str(ULID.from_str(raw_value.strip().upper()))
    except (ValueError, TypeError):
        return None


class HeaderTenantResolver:
    """Resolve the tenant identifier from a request header."""

    name = "header"

    def __init__(
        self,
        allowed_routes: Sequence[str],
        header_name: str = "X-Tenant-ID",
        header_format: HeaderFormat = "integer",
        request_provider: Callable[[], Request | None] = current_request,
        probe: TenantResolutionProbe | None = None,
    ):
        self._allowed_routes = tuple(allowed_routes)
        self._header_name = header_name
        self._header_format = header_format
        self._request_provider = request_provider
        self._probe = probe or DefaultTenantResolutionProbe()

    @classmethod
    def from_settings(
        cls,
        settings: TenancySettings,
        probe: TenantResolutionProbe | None = None,
    ) -> HeaderTenantResolver:
        """Build a resolver from tenancy settings."""
        return cls(
            allowed_routes=settings.header_routes,
            header_name=settings.header_name,
            header_format=settings.header_format,
            probe=probe,
        )

    def resolve_identifier(self) -> TenantId | None:
        """Return the validated header value, or None."""
        try:
            request = self._request_provider()
            if request is None:
                return None
            if not self._is_route_allowed(request):
                return None
            return self._tenant_id_from_header(request)
        except Exception as e:
            self._probe.resolver_failed(resolver=self.name, error=e)
            return None

    def _is_route_allowed(self, request: Request) -> bool:
        """Check the request path and matched route against allowed routes.

        With no allowed routes configured the resolver is disabled.
        """
        if not self._allowed_routes:
            return False

        candidates = [request.url.path]
        route = request.scope.get("route")
        if route is not None:
            candidates.append(getattr(route, "name", None))
            candidates.append(getattr(route, "path", None))

        return any(matches_any(value, self._allowed_routes) for value in candidates)

    def _tenant_id_from_header(self, request: Request) -> TenantId | None:
        raw_value = request.headers.get(self._header_name)
        if raw_value is None or raw_value.strip() == "":
            return None

        if self._header_format == "ulid":
            tenant_id: TenantId | None = parse_ulid(raw_value)
        else:
            tenant_id = parse_positive_integer(raw_value)

        if tenant_id is None:
            self._probe.invalid_header_value(
                header=self._header_name, raw_value=raw_value
            )
        return tenant_id
