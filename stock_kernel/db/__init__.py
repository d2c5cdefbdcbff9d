"""Database layer - engine, base classes, types, and immutability."""

from stock_kernel.db.base import UUID, Base, UtcDateTime, UUIDString
from stock_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "UUIDString",
    "UtcDateTime",
    "UUID",
]
