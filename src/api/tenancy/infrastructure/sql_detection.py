"""Heuristic detection of tenant predicates in raw SQL.

This is targeted pattern matching, not parsing: it answers two questions
about a statement's text for one table:

1. In which role does the statement reference the table (INSERT, UPDATE,
   DELETE, SELECT/JOIN)?
2. Does the statement carry a tenant predicate appropriate to that role?

All rules live in ``OPERATION_RULES`` and the ``_*_TEMPLATE`` constants so
that they can be tested per dialect (quoted identifiers, case, multi-line
statements) without a database. The detection is best-effort: a match is
not a proof of isolation, and statements the rules do not understand are
simply not recognised.

Identifier quoting with backticks, double quotes or single quotes is
optional everywhere. Table and column names are anchored on both sides so
``orders`` never matches ``orders_archive`` or ``my_orders``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from tenancy.domain.value_objects import QueryOperation

_FLAGS = re.IGNORECASE | re.DOTALL

Q = r"[`\"']?"
"""Optional identifier quote."""

_QUALIFIER = rf"(?:{Q}\w+{Q}\.)?"
"""Optional ``table.`` / ``"schema".`` prefix on a column or table."""

# Operation rules in precedence order. DELETE must be tried before SELECT
# because ``DELETE FROM t`` also contains ``FROM t``.
OPERATION_RULES: tuple[tuple[QueryOperation, tuple[str, ...]], ...] = (
    (
        QueryOperation.INSERT,
        (rf"\binsert\s+into\s+{_QUALIFIER}{Q}{{table}}{Q}(?=\s|\(|$)",),
    ),
    (
        QueryOperation.UPDATE,
        (rf"\bupdate\s+{_QUALIFIER}{Q}{{table}}{Q}(?=\s|$)",),
    ),
    (
        QueryOperation.DELETE,
        (rf"\bdelete\s+from\s+{_QUALIFIER}{Q}{{table}}{Q}(?=\s|;|$)",),
    ),
    (
        QueryOperation.SELECT,
        (
            rf"\bfrom\s+{_QUALIFIER}{Q}{{table}}{Q}(?=\s|,|\)|;|$)",
            rf"\bjoin\s+{_QUALIFIER}{Q}{{table}}{Q}(?=\s|\)|$)",
        ),
    ),
)

# Tenant column tested with ``=`` or ``IN (`` anywhere after WHERE.
_WHERE_TENANT_TEMPLATE = (
    rf"\bwhere\b.*?(?<![\w$]){_QUALIFIER}{Q}{{column}}{Q}\s*(?:=(?!=)|\bin\s*\()"
)

# Parenthesised column list directly after ``INSERT INTO <table>``.
_INSERT_COLUMNS_TEMPLATE = (
    rf"\binsert\s+into\s+{_QUALIFIER}{Q}{{table}}{Q}\s*\(([^)]*)\)"
)

_COLUMN_IN_LIST_TEMPLATE = rf"(?<![\w$]){Q}{{column}}{Q}(?![\w$])"

# WHERE clause that starts with an equality on a primary-key column.
_WHERE_PRIMARY_KEY_TEMPLATE = (
    rf"\b{{operation}}\b.+?\bwhere\s+\(?\s*{_QUALIFIER}{Q}{{column}}{Q}\s*=(?!=)"
)


@lru_cache(maxsize=512)
def _operation_patterns(
    table: str,
) -> tuple[tuple[QueryOperation, tuple[re.Pattern[str], ...]], ...]:
    escaped = re.escape(table)
    return tuple(
        (
            operation,
            tuple(re.compile(rule.format(table=escaped), _FLAGS) for rule in rules),
        )
        for operation, rules in OPERATION_RULES
    )


@lru_cache(maxsize=512)
def _where_tenant_pattern(column: str) -> re.Pattern[str]:
    return re.compile(_WHERE_TENANT_TEMPLATE.format(column=re.escape(column)), _FLAGS)


@lru_cache(maxsize=512)
def _insert_columns_pattern(table: str) -> re.Pattern[str]:
    return re.compile(_INSERT_COLUMNS_TEMPLATE.format(table=re.escape(table)), _FLAGS)


@lru_cache(maxsize=512)
def _column_in_list_pattern(column: str) -> re.Pattern[str]:
    return re.compile(_COLUMN_IN_LIST_TEMPLATE.format(column=re.escape(column)), _FLAGS)


@lru_cache(maxsize=512)
def _primary_key_pattern(operation: QueryOperation, column: str) -> re.Pattern[str]:
    return re.compile(
        _WHERE_PRIMARY_KEY_TEMPLATE.format(
            operation=operation.value, column=re.escape(column)
        ),
        _FLAGS,
    )


def detect_operation(sql: str, table: str) -> QueryOperation | None:
    """Return the role in which ``sql`` references ``table``, or None."""
    for operation, patterns in _operation_patterns(table):
        if any(pattern.search(sql) for pattern in patterns):
            return operation
    return None


def where_has_tenant_column(sql: str, tenant_column: str) -> bool:
    """Whether the WHERE clause tests the tenant column with ``=`` or ``IN``."""
    return _where_tenant_pattern(tenant_column).search(sql) is not None


def insert_has_tenant_column(sql: str, table: str, tenant_column: str) -> bool:
    """Whether the INSERT column list for ``table`` names the tenant column."""
    match = _insert_columns_pattern(table).search(sql)
    if match is None:
        return False
    return _column_in_list_pattern(tenant_column).search(match.group(1)) is not None


def is_primary_key_operation(
    sql: str, operation: QueryOperation, primary_keys: Iterable[str]
) -> bool:
    """Whether an UPDATE/DELETE targets rows by primary-key equality."""
    if operation not in (QueryOperation.UPDATE, QueryOperation.DELETE):
        return False
    return any(
        _primary_key_pattern(operation, column).search(sql) is not None
        for column in primary_keys
    )


def has_tenant_predicate(
    sql: str,
    table: str,
    operation: QueryOperation,
    tenant_column: str,
    primary_keys: Iterable[str] = ("id", "uuid"),
) -> bool:
    """Whether ``sql`` carries a tenant predicate suitable for ``operation``.

    - SELECT: the WHERE clause tests the tenant column.
    - INSERT: the column list includes the tenant column.
    - UPDATE/DELETE: the WHERE clause tests the tenant column, or starts
      with an equality on a primary-key column. The latter assumes the row
      was loaded through a tenant-scoped read; the auditor cannot verify it.
    """
    if operation is QueryOperation.INSERT:
        return insert_has_tenant_column(sql, table, tenant_column)

    if where_has_tenant_column(sql, tenant_column):
        return True

    return is_primary_key_operation(sql, operation, primary_keys)
