"""Application registration and credential lookup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from layerstore.db.errors import StorageError
from layerstore.models.application import Application
from layerstore.services import identity
from layerstore.util import unix_timestamp

if TYPE_CHECKING:
    from layerstore.state import ApplicationState

logger = logging.getLogger(__name__)


class ApplicationAuthError(LookupError):
    """No live application matches the supplied hash and secret."""


@dataclass(frozen=True)
class ApplicationRecord:
    """Immutable snapshot of an ``applications`` row."""

    id: int
    hash: str
    hash_secret: str
    name: str
    host: str

    @classmethod
    def from_model(cls, row: Application) -> ApplicationRecord:
        return cls(
            id=row.id,
            hash=row.hash,
            hash_secret=row.hash_secret,
            name=row.name,
            host=row.host,
        )


@dataclass(frozen=True)
class ApplicationContext:
    """A resolved application plus the shared runtime state it runs against."""

    state: ApplicationState
    record: ApplicationRecord

    @property
    def id(self) -> int:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def host(self) -> str:
        return self.record.host


def register_application(state: ApplicationState, name: str, host: str) -> ApplicationContext:
    """Insert a new application with freshly minted hash and secret.

    Raises StorageError when the insert fails.
    """
    timestamp = unix_timestamp()
    row = Application(
        hash=identity.mint(name, host),
        hash_secret=identity.mint_secret(name, host),
        name=name,
        host=host,
        created_at=timestamp,
        updated_at=0,
        deleted_at=0,
    )
    try:
        with state.session_factory() as db:
            db.add(row)
            db.commit()
            db.refresh(row)
            record = ApplicationRecord.from_model(row)
    except SQLAlchemyError as e:
        raise StorageError(f"Failed to register application {name!r}") from e

    logger.info("Registered application id=%d name=%s host=%s", record.id, name, host)
    return ApplicationContext(state=state, record=record)


def get_application(state: ApplicationState, hash: str, secret: str) -> ApplicationContext:
    """Resolve an application by its credentials.

    Raises ApplicationAuthError when no live row matches, StorageError when the
    lookup itself fails.
    """
    try:
        with state.session_factory() as db:
            row = (
                db.query(Application)
                .filter(
                    Application.hash == hash,
                    Application.hash_secret == secret,
                    Application.deleted_at == 0,
                )
                .first()
            )
            record = ApplicationRecord.from_model(row) if row is not None else None
    except SQLAlchemyError as e:
        raise StorageError("Failed to look up application credentials") from e

    if record is None:
        raise ApplicationAuthError("Unable to authorize application credentials")
    return ApplicationContext(state=state, record=record)
