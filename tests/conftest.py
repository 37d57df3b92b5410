"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

import os
import tempfile
from concurrent.futures import Future
from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

# Force a throwaway SQLite DB when pytest runs; don't inherit from .env
_module_db = Path(tempfile.gettempdir()) / "layerstore_pytest.sqlite3"
os.environ["DATABASE_URL"] = f"sqlite:///{_module_db}"
os.environ.pop("DATABASE_URL_CORE", None)


class DeferredWriter:
    """Stand-in for PersistenceWorker that queues jobs until ``flush`` is called.

    Lets tests observe the window where the cache is ahead of storage.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.jobs: list[tuple[object, Future]] = []

    def submit(self, job) -> Future:
        future: Future = Future()
        self.jobs.append((job, future))
        return future

    def flush(self) -> None:
        jobs, self.jobs = self.jobs, []
        for job, future in jobs:
            with self.session_factory() as db:
                job.apply(db)
                db.commit()
            future.set_result(True)

    def stop(self, timeout: float | None = None) -> None:
        self.flush()


@pytest.fixture
def engine(tmp_path: Path):
    """Fresh SQLite database per test with every table created."""
    import layerstore.models  # noqa: F401
    from layerstore.db.session import Base, build_engine

    engine = build_engine(f"sqlite:///{tmp_path / 'layerstore_test.sqlite3'}")
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Session:
    """Database session for direct reads and ingestion tests."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def writer(session_factory: sessionmaker):
    """Started PersistenceWorker; drained and stopped after the test."""
    from layerstore.services.persistence import PersistenceWorker

    worker = PersistenceWorker(session_factory, name="TestPersistenceWorker")
    worker.start()
    try:
        yield worker
    finally:
        worker.stop(timeout=5)


@pytest.fixture
def state(session_factory: sessionmaker, writer):
    from layerstore.state import ApplicationState

    return ApplicationState(session_factory=session_factory, writer=writer)


@pytest.fixture
def application(state):
    """A registered application ("mock") backed by the test database."""
    from layerstore.services.application import register_application

    return register_application(state, "mock", "localhost")


@pytest.fixture
def deferred_writer(session_factory: sessionmaker) -> DeferredWriter:
    return DeferredWriter(session_factory)


@pytest.fixture
def deferred_application(application, session_factory: sessionmaker, deferred_writer):
    """Same application row, but durable writes wait for ``deferred_writer.flush()``."""
    from layerstore.services.application import ApplicationContext
    from layerstore.state import ApplicationState

    deferred_state = ApplicationState(session_factory=session_factory, writer=deferred_writer)
    return ApplicationContext(state=deferred_state, record=application.record)
