"""Observability for tenancy application services."""

from tenancy.application.observability.job_probe import (
    DefaultTenantJobProbe,
    TenantJobProbe,
)

__all__ = [
    "DefaultTenantJobProbe",
    "TenantJobProbe",
]
