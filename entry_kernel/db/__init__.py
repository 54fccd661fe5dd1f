"""Database layer - engine, base classes, types, and immutability listeners."""

from entry_kernel.db.base import UUID, Base, ExactDecimal, TrackedBase, UUIDString
from entry_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from entry_kernel.db.types import canonical_quantity, parse_quantity

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "ExactDecimal",
    "UUID",
    "canonical_quantity",
    "parse_quantity",
]
