"""Automatic tenant predicates for ORM statements.

``install_tenant_scope`` registers two session events on a Session class or
sessionmaker:

- ``do_orm_execute``: every top-level ORM SELECT, UPDATE and DELETE gets
  ``<model>.<tenant column> = :tenant_id`` for each registered, non-exempt
  tenant-owned model. The criterion is attached per model (and to its
  aliases), and it is carried into relationship and column loads.
- ``before_flush``: new or modified tenant-owned instances whose tenant
  column is unset get the current tenant. An existing value is never
  overwritten.

Both are no-ops when the unit of work has no tenant.

Opting out is always explicit at the call site::

    session.scalars(without_tenant_scope(select(Order)))
    session.scalars(for_tenant(select(Order), tenant_id=42))

Usage:
    registry = TenantTableRegistry.from_base(Base)
    install_tenant_scope(SessionLocal, registry)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

from tenancy.application.unit_of_work import current_tenant_context
from tenancy.domain.value_objects import DEFAULT_TENANT_COLUMN, TenantId
from tenancy.infrastructure.mixins import TenantScoped

if TYPE_CHECKING:
    from sqlalchemy.sql.base import Executable

    from tenancy.domain.context import TenantContext
    from tenancy.infrastructure.registry import TenantTableRegistry

ExecutableT = TypeVar("ExecutableT", bound="Executable")

SKIP_TENANT_SCOPE_OPTION = "tenancy_skip_scope"
TENANT_OVERRIDE_OPTION = "tenancy_tenant_id"


def without_tenant_scope(statement: ExecutableT) -> ExecutableT:
    """Mark ``statement`` to run without tenant predicates."""
    return statement.execution_options(**{SKIP_TENANT_SCOPE_OPTION: True})


def for_tenant(statement: ExecutableT, tenant_id: TenantId) -> ExecutableT:
    """Mark ``statement`` to be scoped to ``tenant_id`` instead of the context."""
    return statement.execution_options(**{TENANT_OVERRIDE_OPTION: tenant_id})


def tenant_column_of(model: type) -> str:
    """Resolve a model's tenant column through its ``get_tenant_column`` hook."""
    get_column = getattr(model, "get_tenant_column", None)
    if get_column is None:
        return DEFAULT_TENANT_COLUMN
    return get_column()


def _context_tenant_id(
    context_provider: Callable[[], TenantContext | None],
) -> TenantId | None:
    context = context_provider()
    if context is None:
        return None
    return context.get_identifier()


class TenantScopeInstaller:
    """Session event handlers bound to one registry and context provider."""

    def __init__(
        self,
        registry: TenantTableRegistry,
        context_provider: Callable[[], TenantContext | None] = current_tenant_context,
    ):
        self._registry = registry
        self._context_provider = context_provider

    def apply_criteria(self, orm_execute_state: ORMExecuteState) -> None:
        """``do_orm_execute`` handler adding per-model tenant predicates."""
        if not (
            orm_execute_state.is_select
            or orm_execute_state.is_update
            or orm_execute_state.is_delete
        ):
            return
        # Criteria added to the top-level statement propagate to these loads
        if orm_execute_state.is_column_load or orm_execute_state.is_relationship_load:
            return

        options = orm_execute_state.execution_options
        if options.get(SKIP_TENANT_SCOPE_OPTION, False):
            return

        tenant_id = options.get(TENANT_OVERRIDE_OPTION)
        if tenant_id is None:
            tenant_id = _context_tenant_id(self._context_provider)
        if tenant_id is None:
            return

        criteria = [
            with_loader_criteria(
                model,
                getattr(model, tenant_column_of(model)) == tenant_id,
                include_aliases=True,
            )
            for model in self._registry.scoped_models()
        ]
        if criteria:
            orm_execute_state.statement = orm_execute_state.statement.options(
                *criteria
            )

    def assign_tenant(self, session: Session, flush_context: Any, instances: Any) -> None:
        """``before_flush`` handler filling the tenant column on write."""
        pending = [
            instance
            for instance in (*session.new, *session.dirty)
            if isinstance(instance, TenantScoped) and not instance.is_tenant_exempt()
        ]
        if not pending:
            return

        tenant_id = _context_tenant_id(self._context_provider)
        if tenant_id is None:
            return

        for instance in pending:
            column = instance.get_tenant_column()
            if getattr(instance, column, None) is None:
                setattr(instance, column, tenant_id)


def install_tenant_scope(
    target: Any,
    registry: TenantTableRegistry,
    context_provider: Callable[[], TenantContext | None] = current_tenant_context,
) -> TenantScopeInstaller:
    """Register tenant scoping on a Session class or sessionmaker.

    For async sessions pass the sync session class (for example
    ``AsyncSession.sync_session_class`` or the ``sync_session_class`` given
    to ``async_sessionmaker``).

    Returns:
        The installer, to be passed to ``remove_tenant_scope``.
    """
    installer = TenantScopeInstaller(registry, context_provider)
    event.listen(target, "do_orm_execute", installer.apply_criteria)
    event.listen(target, "before_flush", installer.assign_tenant)
    return installer


def remove_tenant_scope(target: Any, installer: TenantScopeInstaller) -> None:
    """Unregister tenant scoping previously installed on ``target``."""
    event.remove(target, "do_orm_execute", installer.apply_criteria)
    event.remove(target, "before_flush", installer.assign_tenant)
