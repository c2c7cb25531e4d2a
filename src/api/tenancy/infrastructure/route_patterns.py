"""Wildcard matching for route names and request paths.

Patterns are either exact values or contain ``*`` wildcards that match any
run of characters, including ``/``::

    matches_any("/api/orders/7", ["/api/*"])   # True
    matches_any("orders.show", ["orders.*"])   # True
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(
        "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
    )


def matches_pattern(value: str, pattern: str) -> bool:
    """Whether ``value`` equals ``pattern`` or matches its wildcards."""
    if value == pattern:
        return True
    if "*" not in pattern:
        return False
    return _compile(pattern).match(value) is not None


def matches_any(value: str | None, patterns: Iterable[str]) -> bool:
    """Whether ``value`` matches at least one of ``patterns``."""
    if not value:
        return False
    return any(matches_pattern(value, pattern) for pattern in patterns)
