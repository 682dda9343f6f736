"""Database layer - engine, base classes, rounding helpers and upserts."""

from lending_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from lending_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
    unit_of_work,
)
from lending_kernel.db.types import round_money, round_rate

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "unit_of_work",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "round_money",
    "round_rate",
]
