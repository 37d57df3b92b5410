"""Database engine, sessions and declarative base."""

from layerstore.db.errors import StorageError
from layerstore.db.session import Base, SessionLocal, build_engine, check_db_connection, engine

__all__ = [
    "Base",
    "SessionLocal",
    "StorageError",
    "build_engine",
    "check_db_connection",
    "engine",
]
