"""Ports (interfaces) for the tenancy bounded context."""

from tenancy.ports.resolvers import SessionLookup, TenantDomainLookup, TenantResolver

__all__ = [
    "SessionLookup",
    "TenantDomainLookup",
    "TenantResolver",
]
