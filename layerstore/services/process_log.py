"""Application process logs: log locally now, persist in the background."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from layerstore.db.errors import StorageError
from layerstore.models.application_process import ApplicationProcess as ApplicationProcessModel
from layerstore.services import identity
from layerstore.services.persistence import ProcessLogWrite
from layerstore.util import unix_timestamp

if TYPE_CHECKING:
    from layerstore.services.application import ApplicationContext

logger = logging.getLogger(__name__)


class LogLevel(IntEnum):
    """Stored in application_process_logs.type."""

    ERROR = 0
    WARNING = 1
    INFO = 2
    DEBUG = 3


_PY_LEVELS = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


@dataclass(frozen=True)
class ApplicationProcess:
    """A named process of an application, able to write durable log lines."""

    application: ApplicationContext
    id: int
    hash: str
    name: str

    @classmethod
    def get(cls, application: ApplicationContext, name: str) -> ApplicationProcess:
        """Return the live process *name*, creating it when missing.

        Raises StorageError when the lookup or insert fails.
        """
        try:
            with application.state.session_factory() as db:
                row = (
                    db.query(ApplicationProcessModel)
                    .filter(
                        ApplicationProcessModel.application == application.id,
                        ApplicationProcessModel.name == name,
                        ApplicationProcessModel.deleted_at == 0,
                    )
                    .first()
                )
                if row is None:
                    row = ApplicationProcessModel(
                        application=application.id,
                        hash=identity.mint(application.record.hash_secret, name),
                        name=name,
                        created_at=unix_timestamp(),
                        updated_at=0,
                        deleted_at=0,
                    )
                    db.add(row)
                    db.commit()
                    db.refresh(row)
                    logger.info("Created process id=%d name=%s", row.id, name)
                return cls(application=application, id=row.id, hash=row.hash, name=row.name)
        except SQLAlchemyError as e:
            raise StorageError(f"Unable to get process {name!r}") from e

    def log(self, level: LogLevel, content: str, sub_id: str | None = None) -> Future[bool]:
        """Emit *content* through logging now and persist it in the background."""
        sub_id = sub_id or ""
        logger.log(_PY_LEVELS[level], "[%s] %s %s", self.name, sub_id, content)
        return self.application.state.writer.submit(
            ProcessLogWrite(
                application_id=self.application.id,
                process_id=self.id,
                hash=identity.mint(str(self.application.id), str(self.id), content),
                hash_sub=identity.derive([sub_id]),
                level=int(level),
                content=content,
            )
        )

    def log_info(self, content: str) -> Future[bool]:
        return self.log(LogLevel.INFO, content)

    def log_warning(self, content: str) -> Future[bool]:
        return self.log(LogLevel.WARNING, content)

    def log_error(self, content: str) -> Future[bool]:
        return self.log(LogLevel.ERROR, content)

    def log_debug(self, content: str) -> Future[bool]:
        return self.log(LogLevel.DEBUG, content)
