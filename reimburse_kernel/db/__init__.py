"""Database layer - engine, declarative base and column types."""

from reimburse_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from reimburse_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from reimburse_kernel.db.types import Currency, Money, ShortCode

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Currency",
    "ShortCode",
]
