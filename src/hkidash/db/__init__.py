"""Database layer."""

from hkidash.db.base import Base
from hkidash.db.session import AsyncSessionLocal, engine, get_db, init_db

__all__ = [
    "Base",
    "AsyncSessionLocal",
    "engine",
    "get_db",
    "init_db",
]
