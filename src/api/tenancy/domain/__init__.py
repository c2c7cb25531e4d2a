"""Tenancy domain layer.

Holds the per-unit-of-work tenant context, its value objects and the
exceptions raised when a required tenant is missing.
"""

from tenancy.domain.context import TenantContext
from tenancy.domain.exceptions import (
    TenancyError,
    TenantNotFoundError,
    TenantNotResolvedError,
)
from tenancy.domain.messages import TenantMessage
from tenancy.domain.value_objects import (
    DEFAULT_TENANT_COLUMN,
    AuditFinding,
    QueryOperation,
    ResolutionState,
    TenantId,
)

__all__ = [
    "DEFAULT_TENANT_COLUMN",
    "AuditFinding",
    "QueryOperation",
    "ResolutionState",
    "TenancyError",
    "TenantContext",
    "TenantId",
    "TenantMessage",
    "TenantNotFoundError",
    "TenantNotResolvedError",
]
