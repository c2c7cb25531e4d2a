"""Domain-Oriented Observability for the tenancy domain layer."""

from tenancy.domain.observability.resolution_probe import (
    DefaultTenantResolutionProbe,
    TenantResolutionProbe,
)

__all__ = [
    "DefaultTenantResolutionProbe",
    "TenantResolutionProbe",
]
