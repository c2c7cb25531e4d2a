"""Registry of tenant-owned tables.

Maps each tenant-owned table name to the ORM model that owns it (if any).
The owner decides whether the table is exempt from isolation and which
column holds the tenant. Tables configured without an owner are audited
with the default tenant column and are never exempt.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from tenancy.infrastructure.mixins import TenantScoped


@dataclass(frozen=True)
class RegisteredTable:
    """A tenant-owned table and the model type that owns it."""

    table: str
    owner: type | None = None

    @property
    def exempt(self) -> bool:
        """Whether the owner opted out of tenant isolation."""
        if self.owner is None:
            return False
        return bool(getattr(self.owner, "__tenant_exempt__", False))

    def tenant_column(self, default: str) -> str:
        """The owner's tenant column, or ``default`` if it defines none."""
        get_column = getattr(self.owner, "get_tenant_column", None)
        if get_column is None:
            return default
        return get_column()


def _table_name(model: type) -> str:
    table = getattr(model, "__table__", None)
    if table is not None:
        return table.name
    return model.__tablename__  # type: ignore[attr-defined]


class TenantTableRegistry:
    """Immutable mapping of table name → ``RegisteredTable``.

    Iteration follows registration order, which is also the order in
    which the query auditor checks tables.
    """

    def __init__(
        self,
        tables: Mapping[str, type | None] | Iterable[str] = (),
    ):
        if isinstance(tables, Mapping):
            items = tables.items()
        else:
            items = ((name, None) for name in tables)

        self._tables: dict[str, RegisteredTable] = {
            name: RegisteredTable(table=name, owner=owner) for name, owner in items
        }

    @classmethod
    def from_models(cls, models: Iterable[type]) -> TenantTableRegistry:
        """Register each model under its table name."""
        return cls({_table_name(model): model for model in models})

    @classmethod
    def from_base(
        cls, base: Any, extra_tables: Iterable[str] = ()
    ) -> TenantTableRegistry:
        """Register every mapped ``TenantScoped`` model of a declarative base.

        Args:
            base: SQLAlchemy declarative base (anything with ``registry``).
            extra_tables: Additional tenant-owned table names without a model.
        """
        models = [
            mapper.class_
            for mapper in base.registry.mappers
            if issubclass(mapper.class_, TenantScoped)
        ]
        return cls.from_models(models).with_tables(extra_tables)

    def with_tables(
        self, tables: Mapping[str, type | None] | Iterable[str]
    ) -> TenantTableRegistry:
        """Return a registry extended with ``tables``.

        Existing entries keep their owner.
        """
        merged: dict[str, type | None] = {
            name: entry.owner for name, entry in self._tables.items()
        }
        incoming = tables.items() if isinstance(tables, Mapping) else (
            (name, None) for name in tables
        )
        for name, owner in incoming:
            if name not in merged or merged[name] is None:
                merged[name] = owner
        return TenantTableRegistry(merged)

    def get(self, table: str) -> RegisteredTable | None:
        """Return the entry for ``table``, if registered."""
        return self._tables.get(table)

    def scoped_models(self) -> list[type]:
        """Owner models that receive an isolation predicate."""
        return [
            entry.owner
            for entry in self._tables.values()
            if entry.owner is not None and not entry.exempt
        ]

    def __iter__(self) -> Iterator[RegisteredTable]:
        return iter(self._tables.values())

    def __len__(self) -> int:
        return len(self._tables)

    def __contains__(self, table: object) -> bool:
        return table in self._tables

    def __repr__(self) -> str:
        return f"TenantTableRegistry({list(self._tables)!r})"
