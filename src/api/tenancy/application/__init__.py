"""Tenancy application layer: unit-of-work binding and job helpers."""

from tenancy.application.jobs import (
    TenantAwareJob,
    for_each_tenant,
    run_tenant_job,
    set_tenant_from_payload,
)
from tenancy.application.unit_of_work import (
    current_request,
    current_tenant_context,
    tenant_unit_of_work,
)

__all__ = [
    "TenantAwareJob",
    "current_request",
    "current_tenant_context",
    "for_each_tenant",
    "run_tenant_job",
    "set_tenant_from_payload",
    "tenant_unit_of_work",
]
