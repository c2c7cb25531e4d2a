"""Value objects for the tenancy domain.

Value objects are immutable descriptors that provide type safety and
domain semantics for tenant identity and query auditing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Union

TenantId = Union[int, str]
"""Opaque, comparable tenant identifier (primary key or external id)."""

DEFAULT_TENANT_COLUMN = "tenant_id"


class ResolutionState(StrEnum):
    """Lifecycle states of a tenant context within one unit of work."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"


class QueryOperation(StrEnum):
    """Role in which a statement references a tenant-owned table."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    SELECT = "select"


@dataclass(frozen=True)
class AuditFinding:
    """A statement against a tenant-owned table that lacks a tenant predicate.

    Findings are ephemeral: they are handed to the audit probe and never
    persisted.

    Attributes:
        table: Tenant-owned table referenced by the statement.
        operation: Operation role detected for that table.
        sql: Raw statement text as sent to the driver.
        bindings: Bound parameters for the statement.
        elapsed_ms: Execution time in milliseconds, if measured.
        connection_name: Label of the connection that executed it.
        tenant_id: Tenant active in the unit of work.
        source_file: Best-effort application file that issued the statement.
        source_line: Line number within source_file (0 when unknown).
    """

    table: str
    operation: QueryOperation
    sql: str
    bindings: Any = None
    elapsed_ms: float | None = None
    connection_name: str | None = None
    tenant_id: TenantId | None = None
    source_file: str = "unknown"
    source_line: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        """Human-readable summary of what is missing."""
        return _FINDING_MESSAGES[self.operation]

    def as_log_fields(self) -> dict[str, Any]:
        """Structured fields emitted to the audit sink."""
        return {
            "table": self.table,
            "operation": self.operation.value.upper(),
            "sql": self.sql,
            "bindings": self.bindings,
            "elapsed_ms": self.elapsed_ms,
            "connection_name": self.connection_name,
            "tenant_id": self.tenant_id,
            "source_file": self.source_file,
            "source_line": self.source_line,
            **self.extra,
        }


_FINDING_MESSAGES: dict[QueryOperation, str] = {
    QueryOperation.SELECT: "SELECT query executed without tenant filter in WHERE clause",
    QueryOperation.INSERT: "INSERT query executed without tenant column",
    QueryOperation.UPDATE: "UPDATE query executed without tenant filter",
    QueryOperation.DELETE: "DELETE query executed without tenant filter",
}
