"""
Database session management. SQLAlchemy 2.x style.
"""

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from layerstore.config import get_settings

logger = logging.getLogger(__name__)


def build_engine(
    database_url: str,
    *,
    max_connections: int = 5,
    connect_timeout: int = 10,
    echo: bool = False,
) -> Engine:
    """Create an engine for the given URL.

    SQLite is used for local runs and tests; sessions from the background
    persistence worker touch it from another thread, so same-thread checks are off.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    logger.info("Allowing a maximum of %d pooled connections to the database", max_connections)
    connect_args: dict = {"connect_timeout": connect_timeout}
    if database_url.startswith("postgresql"):
        connect_args["options"] = "-c timezone=UTC"
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=max_connections,
        max_overflow=max_connections * 2,
        echo=echo,
        connect_args=connect_args,
    )


settings = get_settings()
engine = build_engine(
    settings.database_url,
    max_connections=settings.db_max_connections,
    connect_timeout=settings.db_connect_timeout,
    echo=settings.debug,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


def check_db_connection(bind: Engine | None = None) -> None:
    """
    Verify database connectivity. Raises if unreachable.
    Call during application startup.
    """
    with (bind or engine).connect() as conn:
        conn.execute(text("SELECT 1"))
