"""Tenant context for a single unit of work.

The tenant context is the single source of truth for "the current tenant"
within one request, job execution or command invocation. It resolves the
tenant lazily through an injected resolver, caches the result, and guards
against resolution re-entering itself.

A context instance must never outlive its unit of work: reusing one across
requests is exactly how one tenant's identifier leaks into another's
queries. ``tenancy.application.unit_of_work`` creates and discards them.

State machine::

    UNRESOLVED --get_identifier()--> RESOLVING --(done)--> RESOLVED
        ^                                                     |
        +-------------------------- clear() ------------------+

``set_identifier()`` moves to RESOLVED from any state; ``using_tenant()``
and ``run_for_tenant()`` do the same and then restore the previous
``(identifier, resolved)`` pair.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, ParamSpec, TypeVar

from tenancy.domain.observability import (
    DefaultTenantResolutionProbe,
    TenantResolutionProbe,
)
from tenancy.domain.value_objects import ResolutionState, TenantId

if TYPE_CHECKING:
    from tenancy.ports.resolvers import TenantResolver

P = ParamSpec("P")
R = TypeVar("R")


class TenantContext:
    """Per-unit-of-work cache of the resolved tenant identifier.

    Args:
        resolver: Strategy (typically a ``ChainTenantResolver``) consulted on
            the first identity read.
        probe: Optional domain probe for observability.
    """

    def __init__(
        self,
        resolver: TenantResolver,
        probe: TenantResolutionProbe | None = None,
    ):
        self._resolver = resolver
        self._probe = probe or DefaultTenantResolutionProbe()
        self._identifier: TenantId | None = None
        self._resolved = False
        self._resolving = False

    @property
    def state(self) -> ResolutionState:
        """Current position in the resolution state machine."""
        if self._resolving:
            return ResolutionState.RESOLVING
        if self._resolved:
            return ResolutionState.RESOLVED
        return ResolutionState.UNRESOLVED

    @property
    def is_resolved(self) -> bool:
        """Whether a resolution or manual override has completed."""
        return self._resolved

    @property
    def is_resolving(self) -> bool:
        """Whether a resolution is currently in flight."""
        return self._resolving

    def get_identifier(self) -> TenantId | None:
        """Return the current tenant identifier, resolving it on first use.

        While a resolution is in flight this returns None instead of
        re-entering the resolver, so strategies that query tenant-owned data
        themselves cannot recurse into their own context.
        """
        if self._resolving:
            self._probe.recursive_resolution_skipped()
            return None

        if not self._resolved:
            self._resolve()

        return self._identifier

    def set_identifier(self, tenant_id: TenantId | None) -> None:
        """Manually set the tenant for the rest of the unit of work."""
        self._probe.tenant_overridden(
            tenant_id=tenant_id, previous_tenant_id=self._identifier
        )
        self._identifier = tenant_id
        self._resolved = True
        self._resolving = False

    def has_tenant(self) -> bool:
        """Whether a tenant is known and no resolution is in flight."""
        if self._resolving:
            return False
        return self.get_identifier() is not None

    def clear(self) -> None:
        """Reset to the initial unresolved state.

        The next identity read triggers a fresh resolution.
        """
        self._identifier = None
        self._resolved = False
        self._resolving = False

    @contextmanager
    def using_tenant(self, tenant_id: TenantId | None) -> Iterator[TenantId | None]:
        """Temporarily act as ``tenant_id``.

        The previous ``(identifier, resolved)`` pair is restored on exit,
        including a return to the unresolved state, whether or not the
        block raised. An in-flight resolution stays guarded afterwards.
        """
        previous_identifier = self._identifier
        was_resolved = self._resolved
        was_resolving = self._resolving

        self.set_identifier(tenant_id)
        try:
            yield tenant_id
        finally:
            self._identifier = previous_identifier
            self._resolved = was_resolved
            self._resolving = was_resolving

    def run_for_tenant(
        self,
        tenant_id: TenantId | None,
        fn: Callable[P, R],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> R:
        """Call ``fn`` as ``tenant_id`` and return its result.

        Any exception raised by ``fn`` propagates unchanged after the
        previous tenant state has been restored.
        """
        with self.using_tenant(tenant_id):
            return fn(*args, **kwargs)

    def _resolve(self) -> None:
        """Run the resolver once and cache its answer."""
        self._resolving = True
        try:
            identifier = self._resolver.resolve_identifier()
        finally:
            self._resolving = False

        self._identifier = identifier
        self._resolved = True

    def __repr__(self) -> str:
        return (
            f"TenantContext(state={self.state.value!r}, "
            f"identifier={self._identifier!r})"
        )
