"""Tenant context FastAPI dependencies.

Both dependencies read the context bound by ``TenantContextMiddleware``.

Usage in FastAPI routes:
    @router.get("/orders")
    def list_orders(
        tenant_id: Annotated[TenantId, Depends(require_tenant)],
    ):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status

from tenancy.application.unit_of_work import current_tenant_context
from tenancy.domain.context import TenantContext
from tenancy.domain.exceptions import TenantNotResolvedError
from tenancy.domain.value_objects import TenantId


def get_tenant_context() -> TenantContext:
    """Get the tenant context of the current request.

    Raises:
        HTTPException 500: If no unit of work is active, which means the
            middleware is not installed.
    """
    context = current_tenant_context()
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Tenant context is not available for this request",
        )
    return context


def require_tenant(
    context: Annotated[TenantContext, Depends(get_tenant_context)],
) -> TenantId:
    """Get the current tenant identifier.

    Raises:
        HTTPException 400: If no tenant was resolved for the request.
    """
    tenant_id = context.get_identifier()
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(TenantNotResolvedError()),
        )
    return tenant_id
