"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Captures unit-of-work scoped metadata that should be included with all
    instrumentation events, so that resolution and audit events can be
    correlated with the request or job that produced them.

    Attributes:
        request_id: Unique identifier for the current request/job.
        tenant_id: Tenant identifier known at the time the context was built.
        route: Request path or job name.
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(request_id="req-123", route="/orders")
        probe = DefaultQueryAuditProbe().with_context(context)
    """

    request_id: str | None = None
    tenant_id: str | None = None
    route: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.tenant_id is not None:
            result["tenant_id"] = self.tenant_id
        if self.route is not None:
            result["route"] = self.route
        result.update(self.extra)
        return result

    def with_tenant(self, tenant_id: str) -> ObservationContext:
        """Create a new context with the tenant identifier set."""
        return ObservationContext(
            request_id=self.request_id,
            tenant_id=tenant_id,
            route=self.route,
            extra=self.extra,
        )

    def with_extra(self, **kwargs: Any) -> ObservationContext:
        """Create a new context with additional metadata."""
        new_extra = {**self.extra, **kwargs}
        return ObservationContext(
            request_id=self.request_id,
            tenant_id=self.tenant_id,
            route=self.route,
            extra=new_extra,
        )
