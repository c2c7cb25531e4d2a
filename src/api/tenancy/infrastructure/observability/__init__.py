"""Observability for tenancy infrastructure operations."""

from tenancy.infrastructure.observability.query_audit_probe import (
    DefaultQueryAuditProbe,
    QueryAuditProbe,
)

__all__ = [
    "DefaultQueryAuditProbe",
    "QueryAuditProbe",
]
