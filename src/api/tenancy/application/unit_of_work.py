"""Unit-of-work binding for tenant contexts.

Every request, job execution or command invocation gets its own
``TenantContext``, bound to a ``ContextVar`` for the duration of the unit
of work and unbound afterwards. There is no process-wide context: code
outside a unit of work sees ``None``.

The request that started the unit of work (if any) is bound alongside, so
resolvers can read headers and host names without a framework global.

Usage:
    with tenant_unit_of_work(resolver, request=request) as context:
        context.get_identifier()
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

from tenancy.domain.context import TenantContext

if TYPE_CHECKING:
    from starlette.requests import Request

    from tenancy.domain.observability import TenantResolutionProbe
    from tenancy.ports.resolvers import TenantResolver

_current_context: ContextVar[TenantContext | None] = ContextVar(
    "tenancy_current_context", default=None
)
_current_request: ContextVar[Request | None] = ContextVar(
    "tenancy_current_request", default=None
)


def current_tenant_context() -> TenantContext | None:
    """Return the tenant context of the active unit of work, if any."""
    return _current_context.get()


def current_request() -> Request | None:
    """Return the HTTP request of the active unit of work, if any."""
    return _current_request.get()


@contextmanager
def tenant_unit_of_work(
    resolver: TenantResolver,
    request: Request | None = None,
    probe: TenantResolutionProbe | None = None,
) -> Iterator[TenantContext]:
    """Open a unit of work with a fresh tenant context.

    Nested units of work get their own context; the outer one is restored
    when the inner one ends.

    Args:
        resolver: Resolver the new context delegates to.
        request: HTTP request driving the unit of work, None for jobs and
            commands.
        probe: Optional resolution probe for the new context.

    Yields:
        The tenant context bound for this unit of work.
    """
    context = TenantContext(resolver, probe=probe)
    context_token = _current_context.set(context)
    request_token = _current_request.set(request)
    try:
        yield context
    finally:
        context.clear()
        _current_request.reset(request_token)
        _current_context.reset(context_token)
