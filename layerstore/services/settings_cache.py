"""Layered application settings cache with asynchronous write-back.

Layers, per application:

- base: setting definitions (name -> ApplicationSetting row)
- global: application-wide value per name
- user: per-user override per (user, name), falling back to global on read

Reads never touch storage. ``set`` creates whatever rows are missing on the
caller's thread (their ids are needed as foreign keys and update targets),
updates memory, then hands the value UPDATE to the persistence worker and
returns its future without waiting.

Cache-ahead-of-store: between ``set`` returning and the background write
completing, ``get`` returns a value storage does not hold yet. If that write
fails it is logged only; memory keeps the new value and storage stays stale
until the next successful write to the same slot. This is intentional.

A cache instance is meant to be owned by one writer per application. Two
callers racing ``set`` on the same slot interleave: last write wins, with no
version check.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Union

from sqlalchemy.exc import SQLAlchemyError

from layerstore.db.errors import StorageError
from layerstore.models.application_global_setting import ApplicationGlobalSetting
from layerstore.models.application_setting import ApplicationSetting
from layerstore.models.application_user_setting import ApplicationUserSetting
from layerstore.services import identity
from layerstore.services.persistence import SettingValueWrite, resolved
from layerstore.util import unix_timestamp

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from layerstore.services.application import ApplicationContext

logger = logging.getLogger(__name__)


class SettingScope(str, Enum):
    """Which layer a read or write targets."""

    GLOBAL = "global"
    USER = "user"


@dataclass(frozen=True)
class SettingDefinition:
    id: int
    hash: str
    name: str

    @classmethod
    def from_model(cls, row: ApplicationSetting) -> SettingDefinition:
        return cls(id=row.id, hash=row.hash, name=row.name)


@dataclass(frozen=True)
class Persisted:
    """Slot backed by a stored row; background writes UPDATE ``id``."""

    id: int
    hash: str
    setting_id: int
    value: str


@dataclass(frozen=True)
class Unpersisted:
    """Slot known only in memory; the next ``set`` must insert its row."""

    setting_id: int
    value: str


SlotState = Union[Persisted, Unpersisted]


@dataclass
class CachedSetting:
    state: SlotState
    cached_at: int

    @property
    def value(self) -> str:
        return self.state.value


@dataclass
class CachedDefinition:
    definition: SettingDefinition
    cached_at: int


UserKey = tuple[str, str]  # (user, name)


def _user_key(user: str | None, name: str) -> UserKey:
    return (user or "", name)


class SettingsCache:
    """In-memory settings for one application. Build with ``SettingsCache.load``."""

    def __init__(
        self,
        application: ApplicationContext,
        base: dict[str, CachedDefinition] | None = None,
        global_: dict[str, CachedSetting] | None = None,
        user: dict[UserKey, CachedSetting] | None = None,
    ):
        self.application = application
        self.base: dict[str, CachedDefinition] = base or {}
        self.global_: dict[str, CachedSetting] = global_ or {}
        self.user: dict[UserKey, CachedSetting] = user or {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, application: ApplicationContext) -> SettingsCache:
        """Load definitions and global values for *application*.

        User overrides are not preloaded; they enter the cache through ``set``.
        Raises StorageError when either query fails.
        """
        base, global_ = cls._read_layers(application)
        logger.info(
            "Settings loaded: application_id=%d definitions=%d global=%d",
            application.id,
            len(base),
            len(global_),
        )
        return cls(application, base=base, global_=global_)

    def refresh(self) -> SettingsCache:
        """Reload definitions and global values from storage. User slots are kept."""
        self.base, self.global_ = self._read_layers(self.application)
        return self

    @staticmethod
    def _read_layers(
        application: ApplicationContext,
    ) -> tuple[dict[str, CachedDefinition], dict[str, CachedSetting]]:
        timestamp = unix_timestamp()
        base: dict[str, CachedDefinition] = {}
        global_: dict[str, CachedSetting] = {}
        try:
            with application.state.session_factory() as db:
                definitions = (
                    db.query(ApplicationSetting)
                    .filter(
                        ApplicationSetting.application == application.id,
                        ApplicationSetting.deleted_at == 0,
                    )
                    .all()
                )
                names: dict[int, str] = {}
                for row in definitions:
                    names[row.id] = row.name
                    base[row.name] = CachedDefinition(SettingDefinition.from_model(row), timestamp)

                if names:
                    rows = (
                        db.query(ApplicationGlobalSetting)
                        .filter(
                            ApplicationGlobalSetting.application == application.id,
                            ApplicationGlobalSetting.setting.in_(list(names)),
                            ApplicationGlobalSetting.deleted_at == 0,
                        )
                        .all()
                    )
                    for row in rows:
                        global_[names[row.setting]] = CachedSetting(_persisted(row), timestamp)
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to load settings for application {application.id}"
            ) from e
        return base, global_

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, scope: SettingScope, name: str, user: str | None = None) -> str | None:
        """Return the cached value for *name*.

        USER scope returns the user's override when present, otherwise the
        global value; ``None`` when neither layer has the name.
        """
        if scope is SettingScope.USER:
            slot = self.user.get(_user_key(user, name))
            if slot is not None:
                return slot.value
        slot = self.global_.get(name)
        return slot.value if slot is not None else None

    def names(self) -> list[str]:
        """Setting names with a cached definition."""
        return sorted(self.base)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(
        self,
        scope: SettingScope,
        name: str,
        value: str,
        user: str | None = None,
    ) -> Future[bool]:
        """Write *value* for *name* in *scope* and return the durable write's future.

        The new value is visible to ``get`` as soon as this returns. The future
        resolves True once storage holds it, False if the background write
        failed. Raises StorageError when the definition or value row cannot be
        created.
        """
        timestamp = unix_timestamp()
        slots, key = self._slots(scope, name, user)
        try:
            with self.application.state.session_factory() as db:
                definition = self._ensure_definition(db, name, timestamp)
                slot = slots.get(key)
                if slot is None or isinstance(slot.state, Unpersisted):
                    state = self._ensure_value_row(db, scope, definition, key, value, timestamp)
                    slots[key] = CachedSetting(state, timestamp)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to persist setting {name!r} ({scope.value})") from e

        slot = slots[key]
        slot.state = replace(slot.state, value=value)
        slot.cached_at = timestamp

        if not isinstance(slot.state, Persisted):
            logger.warning(
                "Setting %r (%s) has no stored row; skipping durable write", name, scope.value
            )
            return resolved(False)

        model = ApplicationGlobalSetting if scope is SettingScope.GLOBAL else ApplicationUserSetting
        return self.application.state.writer.submit(
            SettingValueWrite(model=model, row_id=slot.state.id, value=value)
        )

    def _slots(
        self, scope: SettingScope, name: str, user: str | None
    ) -> tuple[dict, str | UserKey]:
        if scope is SettingScope.GLOBAL:
            return self.global_, name
        return self.user, _user_key(user, name)

    def _ensure_definition(self, db: Session, name: str, timestamp: int) -> SettingDefinition:
        cached = self.base.get(name)
        if cached is not None:
            return cached.definition

        row = (
            db.query(ApplicationSetting)
            .filter(
                ApplicationSetting.application == self.application.id,
                ApplicationSetting.name == name,
                ApplicationSetting.deleted_at == 0,
            )
            .first()
        )
        if row is None:
            row = ApplicationSetting(
                application=self.application.id,
                hash=identity.mint(str(self.application.id), name),
                name=name,
                created_at=timestamp,
                updated_at=0,
                deleted_at=0,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            logger.debug("Created setting definition id=%d name=%s", row.id, name)

        definition = SettingDefinition.from_model(row)
        self.base[name] = CachedDefinition(definition, timestamp)
        return definition

    def _ensure_value_row(
        self,
        db: Session,
        scope: SettingScope,
        definition: SettingDefinition,
        key: str | UserKey,
        value: str,
        timestamp: int,
    ) -> Persisted:
        application_id = self.application.id
        if scope is SettingScope.GLOBAL:
            row = (
                db.query(ApplicationGlobalSetting)
                .filter(
                    ApplicationGlobalSetting.application == application_id,
                    ApplicationGlobalSetting.setting == definition.id,
                    ApplicationGlobalSetting.deleted_at == 0,
                )
                .first()
            )
            if row is None:
                row = ApplicationGlobalSetting(
                    application=application_id,
                    hash=identity.mint(str(application_id), "global", definition.name),
                    setting=definition.id,
                    value=value,
                    created_at=timestamp,
                    updated_at=0,
                    deleted_at=0,
                )
        else:
            hash_user, _ = key
            row = (
                db.query(ApplicationUserSetting)
                .filter(
                    ApplicationUserSetting.application == application_id,
                    ApplicationUserSetting.setting == definition.id,
                    ApplicationUserSetting.hash_user == hash_user,
                    ApplicationUserSetting.deleted_at == 0,
                )
                .first()
            )
            if row is None:
                row = ApplicationUserSetting(
                    application=application_id,
                    hash=identity.mint(str(application_id), "user", hash_user, definition.name),
                    hash_user=hash_user,
                    setting=definition.id,
                    value=value,
                    created_at=timestamp,
                    updated_at=0,
                    deleted_at=0,
                )

        if row.id is None:
            db.add(row)
            db.commit()
            db.refresh(row)
        return _persisted(row)


def _persisted(row: ApplicationGlobalSetting | ApplicationUserSetting) -> Persisted:
    return Persisted(id=row.id, hash=row.hash, setting_id=row.setting, value=row.value)
