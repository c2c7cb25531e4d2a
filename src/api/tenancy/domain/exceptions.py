"""Tenancy domain exceptions."""

from __future__ import annotations


class TenancyError(Exception):
    """Base exception for tenancy operations."""

    pass


class TenantNotResolvedError(TenancyError):
    """Raised when a unit of work requires a tenant and none was resolved."""

    DEFAULT_MESSAGE = "Unable to resolve tenant. No resolver returned a valid tenant ID."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.DEFAULT_MESSAGE)


class TenantNotFoundError(TenancyError):
    """Raised when a tenant is required for an operation but cannot be found."""

    MISSING_IN_PAYLOAD = (
        "Tenant ID not found in payload and fallback is disabled "
        "or no active tenant exists."
    )
    NO_ACTIVE_TENANT = "No active tenant found."

    @classmethod
    def missing_in_payload(cls, message: str | None = None) -> TenantNotFoundError:
        """Create the error for a payload that carries no tenant."""
        return cls(message or cls.MISSING_IN_PAYLOAD)

    @classmethod
    def no_active_tenant(cls, message: str | None = None) -> TenantNotFoundError:
        """Create the error for a missing fallback tenant."""
        return cls(message or cls.NO_ACTIVE_TENANT)
