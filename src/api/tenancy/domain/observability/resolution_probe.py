"""Domain probe for tenant resolution.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events raised while the current tenant is determined:
which strategy won, which strategies failed, when resolution re-entered
itself, and when the tenant was manually overridden.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class TenantResolutionProbe(Protocol):
    """Domain probe for tenant resolution operations."""

    def tenant_resolved(self, resolver: str, tenant_id: Any) -> None:
        """Record that a resolver produced the tenant identifier."""
        ...

    def tenant_not_resolved(self, resolvers: list[str]) -> None:
        """Record that no resolver in the chain produced an identifier."""
        ...

    def resolver_failed(self, resolver: str, error: Exception) -> None:
        """Record that a resolver failed internally and yielded no tenant."""
        ...

    def invalid_header_value(self, header: str, raw_value: str) -> None:
        """Record that the tenant header carried a malformed value."""
        ...

    def recursive_resolution_skipped(self) -> None:
        """Record that an identity read happened while resolution was in flight."""
        ...

    def tenant_overridden(self, tenant_id: Any, previous_tenant_id: Any) -> None:
        """Record that the tenant was set manually for the unit of work."""
        ...

    def with_context(self, context: ObservationContext) -> TenantResolutionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantResolutionProbe:
    """Default implementation of TenantResolutionProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(
        self, context: ObservationContext
    ) -> DefaultTenantResolutionProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantResolutionProbe(logger=self._logger, context=context)

    def tenant_resolved(self, resolver: str, tenant_id: Any) -> None:
        """Record that a resolver produced the tenant identifier."""
        self._logger.debug(
            "tenant_resolved",
            resolver=resolver,
            **{**self._get_context_kwargs(), "tenant_id": tenant_id},
        )

    def tenant_not_resolved(self, resolvers: list[str]) -> None:
        """Record that no resolver in the chain produced an identifier."""
        self._logger.info(
            "tenant_not_resolved",
            resolvers=resolvers,
            **self._get_context_kwargs(),
        )

    def resolver_failed(self, resolver: str, error: Exception) -> None:
        """Record that a resolver failed internally and yielded no tenant."""
        self._logger.warning(
            "tenant_resolver_failed",
            resolver=resolver,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def invalid_header_value(self, header: str, raw_value: str) -> None:
        """Record that the tenant header carried a malformed value."""
        self._logger.warning(
            "tenant_header_invalid",
            header=header,
            raw_value=raw_value,
            **self._get_context_kwargs(),
        )

    def recursive_resolution_skipped(self) -> None:
        """Record that an identity read happened while resolution was in flight."""
        self._logger.debug(
            "tenant_resolution_reentered",
            **self._get_context_kwargs(),
        )

    def tenant_overridden(self, tenant_id: Any, previous_tenant_id: Any) -> None:
        """Record that the tenant was set manually for the unit of work."""
        self._logger.debug(
            "tenant_overridden",
            previous_tenant_id=previous_tenant_id,
            **{**self._get_context_kwargs(), "tenant_id": tenant_id},
        )
