"""Tenant resolver strategies."""

from tenancy.infrastructure.resolvers.chain import ChainTenantResolver
from tenancy.infrastructure.resolvers.domain import DomainTenantResolver
from tenancy.infrastructure.resolvers.header import HeaderTenantResolver
from tenancy.infrastructure.resolvers.session import UserSessionTenantResolver

__all__ = [
    "ChainTenantResolver",
    "DomainTenantResolver",
    "HeaderTenantResolver",
    "UserSessionTenantResolver",
]
