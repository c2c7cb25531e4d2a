"""Tenant context for work that runs outside an HTTP request.

Queued jobs carry the tenant they were dispatched for; commands iterate
over tenants; message listeners read the tenant from the payload. In all
three cases the tenant is set explicitly on a fresh unit of work instead
of being resolved from a request.

Usage:
    class SendInvoice(TenantAwareJob):
        def __init__(self, invoice_id: int):
            self.invoice_id = invoice_id
            self.capture_tenant_context()

    # dispatch side, inside a request
    job = SendInvoice(invoice_id=7)

    # worker side
    run_tenant_job(job, lambda j: send(j.invoice_id), resolver)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from tenancy.application.observability import DefaultTenantJobProbe, TenantJobProbe
from tenancy.application.unit_of_work import current_tenant_context, tenant_unit_of_work
from tenancy.domain.exceptions import TenantNotFoundError
from tenancy.domain.value_objects import DEFAULT_TENANT_COLUMN, TenantId

if TYPE_CHECKING:
    from tenancy.domain.context import TenantContext
    from tenancy.ports.resolvers import TenantResolver

JobT = TypeVar("JobT", bound="TenantAwareJob")
R = TypeVar("R")


class TenantAwareJob:
    """Base class for jobs that remember the tenant they belong to."""

    tenant_id: TenantId | None = None

    def for_tenant(self: JobT, tenant_id: TenantId) -> JobT:
        """Dispatch this job for a specific tenant."""
        self.tenant_id = tenant_id
        return self

    def capture_tenant_context(self) -> None:
        """Record the tenant of the active unit of work, unless already set."""
        if self.tenant_id is not None:
            return
        context = current_tenant_context()
        if context is not None:
            self.tenant_id = context.get_identifier()

    def get_tenant_id(self) -> TenantId | None:
        return self.tenant_id

    def has_tenant_context(self) -> bool:
        return self.tenant_id is not None


def job_tenant_id(job: Any) -> TenantId | None:
    """Read the tenant a job was dispatched for.

    Looks at a ``tenant_id`` attribute first, then a ``get_tenant_id()``
    method. Empty values count as no tenant.
    """
    tenant_id = getattr(job, "tenant_id", None)
    if tenant_id:
        return tenant_id

    get_tenant_id = getattr(job, "get_tenant_id", None)
    if callable(get_tenant_id):
        return get_tenant_id() or None

    return None


def run_tenant_job(
    job: Any,
    handler: Callable[[Any], R],
    resolver: TenantResolver,
    probe: TenantJobProbe | None = None,
) -> R:
    """Run ``handler(job)`` in a fresh unit of work scoped to the job's tenant.

    A job without a tenant runs unscoped: its context resolves through
    ``resolver`` as usual, which outside a request yields no tenant.
    The context is cleared when the handler returns or raises.
    """
    probe = probe or DefaultTenantJobProbe()
    tenant_id = job_tenant_id(job)

    with tenant_unit_of_work(resolver) as context:
        if tenant_id is not None:
            context.set_identifier(tenant_id)
        probe.job_started(job=type(job).__name__, tenant_id=tenant_id)
        return handler(job)


def for_each_tenant(
    tenant_ids: Iterable[TenantId],
    callback: Callable[[TenantId], Any],
    resolver: TenantResolver,
    stop_on_error: bool = False,
    probe: TenantJobProbe | None = None,
) -> int:
    """Run ``callback`` once per tenant, each in its own unit of work.

    A failing tenant is reported and skipped unless ``stop_on_error`` is
    set, in which case its exception propagates.

    Returns:
        The number of tenants for which ``callback`` completed.
    """
    probe = probe or DefaultTenantJobProbe()
    succeeded = 0
    total = 0

    for tenant_id in tenant_ids:
        total += 1
        with tenant_unit_of_work(resolver) as context:
            context.set_identifier(tenant_id)
            try:
                callback(tenant_id)
            except Exception as e:
                probe.tenant_run_failed(tenant_id=tenant_id, error=e)
                if stop_on_error:
                    raise
                continue
        succeeded += 1

    probe.tenant_iteration_completed(succeeded=succeeded, total=total)
    return succeeded


def tenant_id_from_payload(
    payload: Any, tenant_column: str = DEFAULT_TENANT_COLUMN
) -> TenantId | None:
    """Extract the tenant from a mapping or an object payload."""
    if isinstance(payload, Mapping):
        value = payload.get(tenant_column)
    else:
        value = getattr(payload, tenant_column, None)

    if value is None or value == "":
        return None
    return value


def set_tenant_from_payload(
    context: TenantContext,
    payload: Any,
    tenant_column: str = DEFAULT_TENANT_COLUMN,
    fallback: Callable[[], TenantId | None] | None = None,
    probe: TenantJobProbe | None = None,
) -> TenantId:
    """Set the context's tenant from a message payload.

    Args:
        context: Tenant context of the listener's unit of work.
        payload: Mapping or object carrying the tenant column.
        tenant_column: Key or attribute holding the tenant.
        fallback: Called when the payload has no tenant; may return None.
        probe: Optional job probe.

    Returns:
        The tenant that was set.

    Raises:
        TenantNotFoundError: If neither the payload nor the fallback
            provides a tenant.
    """
    tenant_id = tenant_id_from_payload(payload, tenant_column)

    if tenant_id is None:
        (probe or DefaultTenantJobProbe()).payload_tenant_missing(
            tenant_column=tenant_column
        )
        if fallback is None:
            raise TenantNotFoundError.missing_in_payload()
        tenant_id = fallback()
        if tenant_id is None:
            raise TenantNotFoundError.no_active_tenant()

    context.set_identifier(tenant_id)
    return tenant_id
