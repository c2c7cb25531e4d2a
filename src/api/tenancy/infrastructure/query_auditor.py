"""Runtime auditor for statements that bypass tenant isolation.

The auditor observes every statement an engine sends to the driver. When
the unit of work has a resolved tenant and a statement reaches a registered
tenant-owned table without a tenant predicate, it emits one
``AuditFinding`` through its probe.

It is a tripwire, not a guarantee: the detection in ``sql_detection`` is
heuristic, and UPDATE/DELETE by primary key are trusted on the assumption
that the row was loaded through a scoped read.

Auditing fails open. Any error while inspecting a statement is reported
at debug level and the statement is skipped; the auditor never raises
into the database driver.

Usage:
    auditor = TenantQueryAuditor.from_settings(registry)
    auditor.install(engine)
"""

from __future__ import annotations

import sys
import time
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from sqlalchemy import event

from infrastructure.settings import get_query_auditor_settings, get_tenancy_settings
from tenancy.application.unit_of_work import current_tenant_context
from tenancy.domain.value_objects import DEFAULT_TENANT_COLUMN, AuditFinding
from tenancy.infrastructure.observability import (
    DefaultQueryAuditProbe,
    QueryAuditProbe,
)
from tenancy.infrastructure.sql_detection import detect_operation, has_tenant_predicate

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from infrastructure.settings import QueryAuditorSettings, TenancySettings
    from tenancy.domain.context import TenantContext
    from tenancy.infrastructure.registry import TenantTableRegistry

_START_TIME_ATTR = "_tenancy_query_started_at"

_SKIPPED_MODULES: tuple[str, ...] = (
    "sqlalchemy.",
    "asyncpg.",
    "greenlet",
    "tenancy.infrastructure.",
)


def _is_skipped(module: str, skipped: tuple[str, ...]) -> bool:
    if module.partition(".")[0] in sys.stdlib_module_names:
        return True
    return module.startswith(skipped)


def find_query_source(
    skipped_modules: Iterable[str] = _SKIPPED_MODULES,
) -> tuple[str, int]:
    """Return the innermost application frame as ``(file, line)``.

    Frames are skipped by module name: the standard library, SQLAlchemy,
    the driver and the tenancy infrastructure. Application code installed
    into site-packages is still reported. Returns ``("unknown", 0)`` when
    no application frame is on the stack. Statements run through an
    ``AsyncEngine`` execute in a greenlet and may end up there when its
    stack does not reach the awaiting coroutine.
    """
    skipped = tuple(skipped_modules)
    frame = sys._getframe(1)
    while frame is not None:
        module = frame.f_globals.get("__name__") or ""
        if not _is_skipped(module, skipped):
            return frame.f_code.co_filename, frame.f_lineno or 0
        frame = frame.f_back
    return "unknown", 0


class TenantQueryAuditor:
    """Flag statements on tenant-owned tables that lack a tenant predicate.

    Args:
        registry: Tenant-owned tables to watch.
        context_provider: Returns the tenant context of the active unit of
            work, or None outside one.
        tenant_column: Tenant column for tables whose owner defines none.
        primary_keys: Columns whose equality makes UPDATE/DELETE bypass-safe.
        enabled: When False, ``audit`` does nothing.
        probe: Audit sink.
    """

    def __init__(
        self,
        registry: TenantTableRegistry,
        context_provider: Callable[[], TenantContext | None] = current_tenant_context,
        tenant_column: str = DEFAULT_TENANT_COLUMN,
        primary_keys: Iterable[str] = ("id", "uuid"),
        enabled: bool = True,
        probe: QueryAuditProbe | None = None,
    ):
        self._registry = registry
        self._context_provider = context_provider
        self._tenant_column = tenant_column
        self._primary_keys = tuple(primary_keys)
        self._enabled = enabled
        self._probe = probe or DefaultQueryAuditProbe()
        self._listeners: dict[int, tuple[Callable[..., None], Callable[..., None]]] = {}

    @classmethod
    def from_settings(
        cls,
        registry: TenantTableRegistry,
        tenancy_settings: TenancySettings | None = None,
        auditor_settings: QueryAuditorSettings | None = None,
        context_provider: Callable[[], TenantContext | None] = current_tenant_context,
        probe: QueryAuditProbe | None = None,
    ) -> TenantQueryAuditor:
        """Build an auditor from settings.

        Tables listed in ``TenancySettings.tables`` are added to the
        registry, and findings go to the configured log channel.
        """
        tenancy_settings = tenancy_settings or get_tenancy_settings()
        auditor_settings = auditor_settings or get_query_auditor_settings()
        return cls(
            registry=registry.with_tables(tenancy_settings.tables),
            context_provider=context_provider,
            tenant_column=tenancy_settings.tenant_column,
            primary_keys=auditor_settings.primary_keys,
            enabled=auditor_settings.enabled,
            probe=probe or DefaultQueryAuditProbe(channel=auditor_settings.log_channel),
        )

    @property
    def enabled(self) -> bool:
        """Whether statements are audited."""
        return self._enabled

    def audit(
        self,
        sql: str,
        bindings: Any = None,
        elapsed_ms: float | None = None,
        connection_name: str | None = None,
    ) -> AuditFinding | None:
        """Audit one executed statement.

        Returns:
            The finding emitted for the statement, or None when it is
            scoped, irrelevant, or auditing does not apply.
        """
        if not self._enabled:
            return None

        try:
            context = self._context_provider()
            # Never resolved here; unresolved or in-flight contexts are skipped
            if context is None or not context.is_resolved:
                return None
            if not context.has_tenant():
                return None

            return self._inspect(sql, bindings, elapsed_ms, connection_name, context)
        except Exception as e:
            self._probe.audit_failed(sql=sql, error=e)
            return None

    def _inspect(
        self,
        sql: str,
        bindings: Any,
        elapsed_ms: float | None,
        connection_name: str | None,
        context: TenantContext,
    ) -> AuditFinding | None:
        for entry in self._registry:
            if entry.exempt:
                continue

            operation = detect_operation(sql, entry.table)
            if operation is None:
                continue

            tenant_column = entry.tenant_column(self._tenant_column)
            if has_tenant_predicate(
                sql, entry.table, operation, tenant_column, self._primary_keys
            ):
                continue

            source_file, source_line = find_query_source()
            finding = AuditFinding(
                table=entry.table,
                operation=operation,
                sql=sql,
                bindings=bindings,
                elapsed_ms=elapsed_ms,
                connection_name=connection_name,
                tenant_id=context.get_identifier(),
                source_file=source_file,
                source_line=source_line,
            )
            self._probe.missing_tenant_filter(finding)
            return finding

        return None

    def install(self, engine: Any, connection_name: str | None = None) -> None:
        """Attach the auditor to an engine's cursor execution events.

        Accepts a sync ``Engine`` or an ``AsyncEngine`` (its ``sync_engine``
        is used). Installing twice on the same engine is a no-op.
        """
        target: Engine = getattr(engine, "sync_engine", engine)
        if id(target) in self._listeners:
            return

        name = connection_name or target.url.database or target.name

        def before_cursor_execute(
            conn, cursor, statement, parameters, context, executemany
        ):  # type: ignore[no-untyped-def]
            if context is not None:
                setattr(context, _START_TIME_ATTR, time.perf_counter())

        def after_cursor_execute(
            conn, cursor, statement, parameters, context, executemany
        ):  # type: ignore[no-untyped-def]
            started_at = getattr(context, _START_TIME_ATTR, None)
            elapsed_ms = (
                (time.perf_counter() - started_at) * 1000
                if started_at is not None
                else None
            )
            self.audit(
                statement,
                parameters,
                elapsed_ms=elapsed_ms,
                connection_name=name,
            )

        event.listen(target, "before_cursor_execute", before_cursor_execute)
        event.listen(target, "after_cursor_execute", after_cursor_execute)
        self._listeners[id(target)] = (before_cursor_execute, after_cursor_execute)

    def uninstall(self, engine: Any) -> None:
        """Detach the auditor from an engine it was installed on."""
        target = getattr(engine, "sync_engine", engine)
        listeners = self._listeners.pop(id(target), None)
        if listeners is None:
            return

        before_cursor_execute, after_cursor_execute = listeners
        event.remove(target, "before_cursor_execute", before_cursor_execute)
        event.remove(target, "after_cursor_execute", after_cursor_execute)
