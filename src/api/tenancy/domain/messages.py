"""Tenant-stamped message envelope for queues and event streams.

Messages crossing a process boundary carry their tenant explicitly so
the consuming job can rebuild its tenant context from the payload rather
than from ambient state.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from tenancy.domain.exceptions import TenantNotResolvedError
from tenancy.domain.value_objects import TenantId

if TYPE_CHECKING:
    from tenancy.domain.context import TenantContext


def _default_metadata(source: str, extra: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "created_at": datetime.now(UTC).isoformat(),
        "source": source,
        **(extra or {}),
    }


class TenantMessage(BaseModel):
    """Immutable message bound to one tenant."""

    model_config = ConfigDict(frozen=True)

    tenant_id: TenantId
    event_type: str = Field(min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def create(
        cls,
        context: TenantContext,
        event_type: str,
        payload: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        source: str = "unknown",
    ) -> TenantMessage:
        """Build a message for the tenant of the current unit of work.

        Raises:
            TenantNotResolvedError: If the context has no tenant.
        """
        tenant_id = context.get_identifier()
        if tenant_id is None:
            raise TenantNotResolvedError(
                "Cannot create TenantMessage without tenant context"
            )
        return cls.for_tenant(tenant_id, event_type, payload, metadata, source)

    @classmethod
    def for_tenant(
        cls,
        tenant_id: TenantId,
        event_type: str,
        payload: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
        source: str = "unknown",
    ) -> TenantMessage:
        """Build a message for an explicit tenant."""
        return cls(
            tenant_id=tenant_id,
            event_type=event_type,
            payload=payload or {},
            metadata=_default_metadata(source, metadata),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TenantMessage:
        """Rebuild a message from its dictionary form.

        Raises:
            pydantic.ValidationError: If tenant_id or event_type is missing.
        """
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, raw: str | bytes) -> TenantMessage:
        """Rebuild a message from JSON.

        Raises:
            pydantic.ValidationError: If the JSON is malformed or incomplete.
        """
        return cls.model_validate_json(raw)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-compatible dictionary form."""
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        """Return the JSON form."""
        return self.model_dump_json()
