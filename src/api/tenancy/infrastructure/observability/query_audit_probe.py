"""Domain probe for the runtime query auditor.

Following Domain-Oriented Observability patterns, this probe is the audit
sink: findings about statements that reached a tenant-owned table without
a tenant predicate are emitted here as structured log events. The
destination is chosen by the logger (channel) the probe is built with.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext
    from tenancy.domain.value_objects import AuditFinding


class QueryAuditProbe(Protocol):
    """Domain probe for query audit operations."""

    def missing_tenant_filter(self, finding: AuditFinding) -> None:
        """Record a statement that lacks a tenant predicate."""
        ...

    def audit_failed(self, sql: str, error: Exception) -> None:
        """Record that a statement could not be audited and was skipped."""
        ...

    def with_context(self, context: ObservationContext) -> QueryAuditProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultQueryAuditProbe:
    """Default implementation of QueryAuditProbe using structlog.

    Args:
        logger: Logger to emit findings to.
        context: Observation context bound to every event.
        channel: Logger name used when no logger is given; None selects
            the default structlog logger.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
        channel: str | None = None,
    ):
        if logger is None:
            logger = structlog.get_logger(channel) if channel else structlog.get_logger()
        self._logger = logger
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultQueryAuditProbe:
        """Create a new probe with observation context bound."""
        return DefaultQueryAuditProbe(logger=self._logger, context=context)

    def missing_tenant_filter(self, finding: AuditFinding) -> None:
        """Record a statement that lacks a tenant predicate."""
        self._logger.warning(
            "tenant_query_missing_tenant_filter",
            message=finding.message,
            **{**self._get_context_kwargs(), **finding.as_log_fields()},
        )

    def audit_failed(self, sql: str, error: Exception) -> None:
        """Record that a statement could not be audited and was skipped."""
        self._logger.debug(
            "tenant_query_audit_failed",
            sql=sql,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
