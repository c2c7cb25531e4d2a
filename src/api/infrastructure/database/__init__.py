"""Database infrastructure - engine and tenant-scoped sessions."""

from infrastructure.database.engines import build_async_url, create_engine

__all__ = [
    "build_async_url",
    "create_engine",
]
