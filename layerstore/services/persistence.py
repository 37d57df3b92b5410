"""PersistenceWorker — background thread that applies durable writes.

Callers hand over small write jobs and get a ``Future`` back without waiting
for storage. One worker thread drains a queue, so jobs are applied in
submission order, each in its own session and commit.

Failures are logged and swallowed: the job's future resolves to ``False``
and nothing is retried. Callers that need retries wrap the returned future.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import update

from layerstore.models.application_process import ApplicationProcessLog
from layerstore.util import unix_timestamp

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


class PersistenceJob(Protocol):
    """A unit of durable work. ``apply`` must not commit; the worker does."""

    def apply(self, db: Session) -> None: ...


class JobSubmitter(Protocol):
    def submit(self, job: PersistenceJob) -> Future[bool]: ...


@dataclass(frozen=True)
class SettingValueWrite:
    """UPDATE the value of an already-inserted global or user setting row."""

    model: type
    row_id: int
    value: str

    def apply(self, db: Session) -> None:
        db.execute(
            update(self.model)
            .where(self.model.id == self.row_id)
            .values(value=self.value, updated_at=unix_timestamp())
        )


@dataclass(frozen=True)
class ProcessLogWrite:
    """INSERT one application process log line."""

    application_id: int
    process_id: int
    hash: str
    hash_sub: str
    level: int
    content: str
    created_at: int = field(default_factory=unix_timestamp)

    def apply(self, db: Session) -> None:
        db.add(
            ApplicationProcessLog(
                application=self.application_id,
                process=self.process_id,
                hash=self.hash,
                hash_sub=self.hash_sub,
                type=self.level,
                content=self.content,
                created_at=self.created_at,
                updated_at=0,
                deleted_at=0,
            )
        )


def resolved(result: bool) -> Future[bool]:
    """Return an already-completed future."""
    future: Future[bool] = Future()
    future.set_result(result)
    return future


_STOP = object()


class PersistenceWorker:
    """Single background thread applying ``PersistenceJob`` instances in order."""

    def __init__(self, session_factory: sessionmaker, *, name: str = "PersistenceWorker"):
        self.session_factory = session_factory
        self.name = name
        self._queue: queue.Queue = queue.Queue()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker loop in a background thread."""
        with self._lock:
            if self.running:
                return
            self._thread = threading.Thread(target=self._loop, daemon=True, name=self.name)
            self._thread.start()
        logger.info("%s: started", self.name)

    def stop(self, timeout: float | None = 10.0) -> None:
        """Apply everything already queued, then stop the thread."""
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._queue.put(_STOP)
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("%s: thread did not stop within timeout", self.name)
            else:
                logger.info("%s: stopped", self.name)
            self._thread = None

    def submit(self, job: PersistenceJob) -> Future[bool]:
        """Queue *job* and return its future. Starts the thread on first use."""
        if not self.running:
            self.start()
        future: Future[bool] = Future()
        self._queue.put((job, future))
        return future

    def pending(self) -> int:
        """Approximate number of queued jobs."""
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def _loop(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                job, future = item
                if future.set_running_or_notify_cancel():
                    future.set_result(self._apply(job))
            finally:
                self._queue.task_done()

    def _apply(self, job: PersistenceJob) -> bool:
        db = self.session_factory()
        try:
            job.apply(db)
            db.commit()
            return True
        except Exception:
            db.rollback()
            logger.warning("%s: %s failed", self.name, type(job).__name__, exc_info=True)
            return False
        finally:
            db.close()
