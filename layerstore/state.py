"""Runtime wiring: sessions + persistence worker shared by every component."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker

from layerstore.config import get_settings
from layerstore.db.session import SessionLocal, build_engine
from layerstore.services.persistence import PersistenceWorker

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging once for scripts and long-running jobs."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@dataclass
class ApplicationState:
    """Shared handles: the session factory and the background writer."""

    session_factory: sessionmaker
    writer: PersistenceWorker

    def close(self, timeout: float | None = None) -> None:
        """Drain and stop the writer, then release pooled connections."""
        if timeout is None:
            timeout = get_settings().persistence_stop_timeout
        self.writer.stop(timeout=timeout)
        bind = self.session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()


def create_state() -> ApplicationState:
    """Build state against the core database (DATABASE_URL_CORE)."""
    settings = get_settings()
    if settings.database_url_core == settings.database_url:
        session_factory = SessionLocal
    else:
        core_engine = build_engine(
            settings.database_url_core,
            max_connections=settings.db_max_connections,
            connect_timeout=settings.db_connect_timeout,
            echo=settings.debug,
        )
        session_factory = sessionmaker(autocommit=False, autoflush=False, bind=core_engine)
    writer = PersistenceWorker(session_factory)
    writer.start()
    return ApplicationState(session_factory=session_factory, writer=writer)
