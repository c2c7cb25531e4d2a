"""Declarative mixin marking ORM models as tenant-owned.

Usage:
    class Order(TenantScoped, Base):
        __tablename__ = "orders"

        id: Mapped[int] = mapped_column(primary_key=True)
        tenant_id: Mapped[int | None] = mapped_column(index=True)

    class Country(TenantScoped, Base):
        __tablename__ = "countries"
        __tenant_exempt__ = True  # shared reference data

    class Invoice(TenantScoped, Base):
        __tablename__ = "invoices"
        __tenant_column__ = "organization_id"
"""

from __future__ import annotations

from typing import ClassVar

from tenancy.domain.value_objects import DEFAULT_TENANT_COLUMN


class TenantScoped:
    """Marks a model whose rows belong to a tenant.

    Class attributes:
        __tenant_column__: Name of the tenant column; defaults to ``tenant_id``.
        __tenant_exempt__: Opt the model out of predicate injection and
            query auditing.
    """

    __tenant_column__: ClassVar[str | None] = None
    __tenant_exempt__: ClassVar[bool] = False

    @classmethod
    def get_tenant_column(cls) -> str:
        """Return the tenant column name. Override for custom resolution."""
        return cls.__tenant_column__ or DEFAULT_TENANT_COLUMN

    @classmethod
    def is_tenant_exempt(cls) -> bool:
        """Whether this model is excluded from tenant isolation."""
        return bool(cls.__tenant_exempt__)
