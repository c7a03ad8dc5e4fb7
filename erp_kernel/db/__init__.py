"""Database layer - engine, base classes."""

from erp_kernel.db.base import Base, TrackedBase
from erp_kernel.db.engine import create_tables, get_engine, get_session, session_scope

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
]
