"""Ordered chain of tenant resolvers.

Resolvers are tried in priority order and the first non-None answer wins;
later resolvers are never invoked once one succeeds, since they may hit
the network or the database.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from infrastructure.settings import get_tenancy_settings
from tenancy.domain.observability import (
    DefaultTenantResolutionProbe,
    TenantResolutionProbe,
)
from tenancy.domain.value_objects import TenantId
from tenancy.infrastructure.resolvers.header import HeaderTenantResolver
from tenancy.infrastructure.resolvers.session import UserSessionTenantResolver

if TYPE_CHECKING:
    from infrastructure.settings import TenancySettings
    from tenancy.ports.resolvers import SessionLookup, TenantResolver


def resolver_name(resolver: TenantResolver) -> str:
    """Short label for a resolver in log events."""
    return getattr(resolver, "name", None) or type(resolver).__name__


class ChainTenantResolver:
    """Try each resolver in order until one returns a tenant identifier.

    The chain holds no mutable state and can be shared across units of
    work.

    Args:
        resolvers: Resolvers in priority order. When empty, the default
            ordered set is used: user session first, then header.
        settings: Tenancy settings used to build the default resolvers.
        probe: Optional domain probe for observability.
        session_lookup: Session store for the default session resolver,
            queried with the ``session_id_header`` value.
        session_provider: Callable returning the current session for the
            default session resolver.
    """

    name = "chain"

    def __init__(
        self,
        resolvers: Sequence[TenantResolver] = (),
        settings: TenancySettings | None = None,
        probe: TenantResolutionProbe | None = None,
        session_lookup: SessionLookup | None = None,
        session_provider: Callable[[], Any | None] | None = None,
    ):
        self._probe = probe or DefaultTenantResolutionProbe()
        self._resolvers: tuple[TenantResolver, ...] = tuple(resolvers) or tuple(
            self.default_resolvers(
                settings or get_tenancy_settings(),
                self._probe,
                session_lookup=session_lookup,
                session_provider=session_provider,
            )
        )

    @property
    def resolvers(self) -> tuple[TenantResolver, ...]:
        """The resolvers in the order they are tried."""
        return self._resolvers

    @staticmethod
    def default_resolvers(
        settings: TenancySettings,
        probe: TenantResolutionProbe | None = None,
        session_lookup: SessionLookup | None = None,
        session_provider: Callable[[], Any | None] | None = None,
    ) -> list[TenantResolver]:
        """The default ordered resolver set: user session, then header."""
        return [
            UserSessionTenantResolver.from_settings(
                settings,
                session_lookup=session_lookup,
                session_provider=session_provider,
                probe=probe,
            ),
            HeaderTenantResolver.from_settings(settings, probe=probe),
        ]

    def resolve_identifier(self) -> TenantId | None:
        """Return the first identifier produced by the chain, or None."""
        for resolver in self._resolvers:
            try:
                tenant_id = resolver.resolve_identifier()
            except Exception as e:
                # Resolvers must not raise; one that does is skipped.
                self._probe.resolver_failed(resolver=resolver_name(resolver), error=e)
                continue

            if tenant_id is not None:
                self._probe.tenant_resolved(
                    resolver=resolver_name(resolver), tenant_id=tenant_id
                )
                return tenant_id

        self._probe.tenant_not_resolved(
            resolvers=[resolver_name(resolver) for resolver in self._resolvers]
        )
        return None
