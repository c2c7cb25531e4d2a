"""FastAPI integration for tenant contexts."""

from tenancy.dependencies.middleware import TenantContextMiddleware
from tenancy.dependencies.tenant_context import get_tenant_context, require_tenant

__all__ = [
    "TenantContextMiddleware",
    "get_tenant_context",
    "require_tenant",
]
