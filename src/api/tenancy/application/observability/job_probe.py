"""Domain probe for tenant-aware jobs and commands.

Following Domain-Oriented Observability patterns, this probe captures the
events of work that runs outside an HTTP request: a job executing for a
tenant, a per-tenant iteration succeeding or failing, and a message
payload that names no tenant.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class TenantJobProbe(Protocol):
    """Domain probe for tenant-aware background work."""

    def job_started(self, job: str, tenant_id: Any) -> None:
        """Record that a job started for a tenant (None when unscoped)."""
        ...

    def tenant_run_failed(self, tenant_id: Any, error: Exception) -> None:
        """Record that the work for one tenant raised."""
        ...

    def tenant_iteration_completed(self, succeeded: int, total: int) -> None:
        """Record the outcome of running work for every tenant."""
        ...

    def payload_tenant_missing(self, tenant_column: str) -> None:
        """Record that a message payload carried no tenant."""
        ...

    def with_context(self, context: ObservationContext) -> TenantJobProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantJobProbe:
    """Default implementation of TenantJobProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultTenantJobProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantJobProbe(logger=self._logger, context=context)

    def job_started(self, job: str, tenant_id: Any) -> None:
        self._logger.info(
            "tenant_job_started",
            job=job,
            **{**self._get_context_kwargs(), "tenant_id": tenant_id},
        )

    def tenant_run_failed(self, tenant_id: Any, error: Exception) -> None:
        self._logger.error(
            "tenant_run_failed",
            error=str(error),
            error_type=type(error).__name__,
            **{**self._get_context_kwargs(), "tenant_id": tenant_id},
        )

    def tenant_iteration_completed(self, succeeded: int, total: int) -> None:
        self._logger.info(
            "tenant_iteration_completed",
            succeeded=succeeded,
            total=total,
            **self._get_context_kwargs(),
        )

    def payload_tenant_missing(self, tenant_column: str) -> None:
        self._logger.warning(
            "tenant_payload_missing_tenant",
            tenant_column=tenant_column,
            **self._get_context_kwargs(),
        )
