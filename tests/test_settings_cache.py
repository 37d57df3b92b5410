"""Tests for the layered settings cache."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from layerstore.db.errors import StorageError
from layerstore.models import ApplicationGlobalSetting, ApplicationSetting, ApplicationUserSetting
from layerstore.services.application import ApplicationContext
from layerstore.services.persistence import PersistenceWorker
from layerstore.services.settings_cache import (
    CachedSetting,
    Persisted,
    SettingsCache,
    SettingScope,
    Unpersisted,
)
from layerstore.state import ApplicationState

GLOBAL = SettingScope.GLOBAL
USER = SettingScope.USER


def _stored_global(db, name: str) -> list[ApplicationGlobalSetting]:
    return (
        db.query(ApplicationGlobalSetting)
        .join(ApplicationSetting, ApplicationSetting.id == ApplicationGlobalSetting.setting)
        .filter(ApplicationSetting.name == name)
        .all()
    )


def _stored_user(db, name: str, user: str) -> list[ApplicationUserSetting]:
    return (
        db.query(ApplicationUserSetting)
        .join(ApplicationSetting, ApplicationSetting.id == ApplicationUserSetting.setting)
        .filter(ApplicationSetting.name == name, ApplicationUserSetting.hash_user == user)
        .all()
    )


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("database unreachable"))


# ── scenarios ────────────────────────────────────────────────────────


class TestScenarios:
    def test_global_set_then_get(self, application) -> None:
        cache = SettingsCache.load(application)

        handle = cache.set(GLOBAL, "mock.test1", "hello world")

        assert cache.get(GLOBAL, "mock.test1") == "hello world"
        assert handle.result(timeout=5) is True

    def test_user_read_falls_back_to_global(self, application) -> None:
        cache = SettingsCache.load(application)

        cache.set(GLOBAL, "mock.test3", "global_happy").result(timeout=5)

        assert cache.get(USER, "mock.test3", "123") == "global_happy"

    def test_user_override_does_not_touch_global(self, application) -> None:
        cache = SettingsCache.load(application)
        cache.set(GLOBAL, "mock.test1", "hello world")

        cache.set(USER, "mock.test1", "user test 1", "123")

        assert cache.get(USER, "mock.test1", "123") == "user test 1"
        assert cache.get(GLOBAL, "mock.test1") == "hello world"
        assert cache.get(USER, "mock.test1", "456") == "hello world"


# ── get ──────────────────────────────────────────────────────────────


class TestGet:
    def test_unknown_name_is_none(self, application) -> None:
        cache = SettingsCache.load(application)

        assert cache.get(GLOBAL, "missing") is None
        assert cache.get(USER, "missing", "123") is None

    def test_user_without_global_is_none_for_other_users(self, application) -> None:
        cache = SettingsCache.load(application)
        cache.set(USER, "theme", "dark", "123")

        assert cache.get(USER, "theme", "123") == "dark"
        assert cache.get(USER, "theme", "999") is None
        assert cache.get(GLOBAL, "theme") is None

    def test_user_none_is_the_empty_user(self, application) -> None:
        cache = SettingsCache.load(application)
        cache.set(USER, "lang", "en")

        assert cache.get(USER, "lang", None) == "en"
        assert cache.get(USER, "lang", "") == "en"


# ── set ──────────────────────────────────────────────────────────────


class TestSet:
    def test_first_write_creates_definition_and_value_rows(self, application, db) -> None:
        cache = SettingsCache.load(application)

        cache.set(GLOBAL, "feature.flag", "on").result(timeout=5)

        definition = db.query(ApplicationSetting).filter_by(name="feature.flag").one()
        assert definition.application == application.id
        assert len(definition.hash) == 32
        rows = _stored_global(db, "feature.flag")
        assert len(rows) == 1
        assert rows[0].value == "on"
        assert rows[0].deleted_at == 0

    def test_repeated_writes_update_the_same_row(self, application, db) -> None:
        cache = SettingsCache.load(application)

        cache.set(GLOBAL, "feature.flag", "on").result(timeout=5)
        row_id = cache.global_["feature.flag"].state.id
        cache.set(GLOBAL, "feature.flag", "off").result(timeout=5)

        rows = _stored_global(db, "feature.flag")
        assert [r.id for r in rows] == [row_id]
        assert rows[0].value == "off"
        assert rows[0].updated_at > 0
        assert db.query(ApplicationSetting).filter_by(name="feature.flag").count() == 1

    def test_user_rows_are_per_user(self, application, db) -> None:
        cache = SettingsCache.load(application)

        cache.set(USER, "theme", "dark", "123").result(timeout=5)
        cache.set(USER, "theme", "light", "456").result(timeout=5)

        assert _stored_user(db, "theme", "123")[0].value == "dark"
        assert _stored_user(db, "theme", "456")[0].value == "light"
        assert db.query(ApplicationSetting).filter_by(name="theme").count() == 1

    def test_global_and_user_share_one_definition(self, application, db) -> None:
        cache = SettingsCache.load(application)

        cache.set(GLOBAL, "limit", "10").result(timeout=5)
        cache.set(USER, "limit", "20", "123").result(timeout=5)

        definition = db.query(ApplicationSetting).filter_by(name="limit").one()
        assert cache.global_["limit"].state.setting_id == definition.id
        assert cache.user[("123", "limit")].state.setting_id == definition.id

    def test_unpersisted_slot_is_inserted_on_next_write(self, application, db) -> None:
        cache = SettingsCache.load(application)
        cache.global_["draft"] = CachedSetting(Unpersisted(setting_id=0, value="pending"), 0)

        cache.set(GLOBAL, "draft", "saved").result(timeout=5)

        state = cache.global_["draft"].state
        assert isinstance(state, Persisted)
        assert state.value == "saved"
        rows = _stored_global(db, "draft")
        assert [r.id for r in rows] == [state.id]
        assert rows[0].value == "saved"

    def test_adopts_user_row_written_by_an_earlier_cache(self, application, db) -> None:
        first = SettingsCache.load(application)
        first.set(USER, "theme", "dark", "123").result(timeout=5)

        second = SettingsCache.load(application)
        second.set(USER, "theme", "light", "123").result(timeout=5)

        rows = _stored_user(db, "theme", "123")
        assert len(rows) == 1
        assert rows[0].value == "light"

    def test_adopts_definition_created_after_load(self, application, db) -> None:
        first = SettingsCache.load(application)
        second = SettingsCache.load(application)

        first.set(GLOBAL, "shared", "a").result(timeout=5)
        second.set(GLOBAL, "shared", "b").result(timeout=5)

        assert db.query(ApplicationSetting).filter_by(name="shared").count() == 1
        rows = _stored_global(db, "shared")
        assert len(rows) == 1
        assert rows[0].value == "b"

    def test_storage_failure_raises_and_leaves_cache_untouched(self, application) -> None:
        failing_factory = MagicMock(side_effect=_db_error())
        broken = ApplicationContext(
            state=ApplicationState(session_factory=failing_factory, writer=MagicMock()),
            record=application.record,
        )
        cache = SettingsCache(broken)

        with pytest.raises(StorageError) as exc_info:
            cache.set(GLOBAL, "feature.flag", "on")

        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert cache.get(GLOBAL, "feature.flag") is None
        broken.state.writer.submit.assert_not_called()


# ── cache-ahead-of-store ─────────────────────────────────────────────


class TestCacheAheadOfStore:
    """``set`` returns before storage holds the value; this window is intentional."""

    def test_value_visible_before_durable_write(
        self, deferred_application, deferred_writer, db
    ) -> None:
        cache = SettingsCache.load(deferred_application)
        cache.set(GLOBAL, "mode", "v1")
        deferred_writer.flush()

        handle = cache.set(GLOBAL, "mode", "v2")

        assert not handle.done()
        assert cache.get(GLOBAL, "mode") == "v2"
        db.expire_all()
        assert _stored_global(db, "mode")[0].value == "v1"

        deferred_writer.flush()

        assert handle.result(timeout=0) is True
        db.expire_all()
        assert _stored_global(db, "mode")[0].value == "v2"

    def test_failed_background_write_is_not_surfaced(
        self, application, session_factory, db, caplog
    ) -> None:
        failing_db = MagicMock()
        failing_db.execute.side_effect = _db_error()
        failing_writer = PersistenceWorker(MagicMock(return_value=failing_db))
        context = ApplicationContext(
            state=ApplicationState(session_factory=session_factory, writer=failing_writer),
            record=application.record,
        )
        cache = SettingsCache.load(context)
        try:
            cache.set(GLOBAL, "mode", "v1").result(timeout=5)

            handle = cache.set(GLOBAL, "mode", "v2")

            assert handle.result(timeout=5) is False
            assert cache.get(GLOBAL, "mode") == "v2"
            assert _stored_global(db, "mode")[0].value == "v1"
            assert "SettingValueWrite failed" in caplog.text
            failing_db.rollback.assert_called()
        finally:
            failing_writer.stop(timeout=5)


# ── load / refresh ───────────────────────────────────────────────────


class TestLoad:
    def test_load_restores_global_values(self, application) -> None:
        writer_cache = SettingsCache.load(application)
        writer_cache.set(GLOBAL, "a", "1").result(timeout=5)
        writer_cache.set(GLOBAL, "b", "2").result(timeout=5)

        cache = SettingsCache.load(application)

        assert cache.get(GLOBAL, "a") == "1"
        assert cache.get(GLOBAL, "b") == "2"
        assert cache.names() == ["a", "b"]
        assert all(isinstance(slot.state, Persisted) for slot in cache.global_.values())

    def test_load_does_not_preload_user_overrides(self, application) -> None:
        writer_cache = SettingsCache.load(application)
        writer_cache.set(GLOBAL, "theme", "default").result(timeout=5)
        writer_cache.set(USER, "theme", "dark", "123").result(timeout=5)

        cache = SettingsCache.load(application)

        assert cache.user == {}
        assert cache.get(USER, "theme", "123") == "default"

    def test_load_ignores_soft_deleted_rows(self, application, db) -> None:
        writer_cache = SettingsCache.load(application)
        writer_cache.set(GLOBAL, "old", "x").result(timeout=5)
        db.query(ApplicationSetting).filter_by(name="old").update({"deleted_at": 1})
        db.commit()

        cache = SettingsCache.load(application)

        assert cache.get(GLOBAL, "old") is None
        assert "old" not in cache.base

    def test_load_is_scoped_to_the_application(self, application, state) -> None:
        from layerstore.services.application import register_application

        other = register_application(state, "other", "localhost")
        SettingsCache.load(other).set(GLOBAL, "flag", "other").result(timeout=5)

        cache = SettingsCache.load(application)

        assert cache.get(GLOBAL, "flag") is None

    def test_no_definitions_skips_global_query(self, application) -> None:
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = []
        factory = MagicMock()
        factory.return_value.__enter__.return_value = db
        context = ApplicationContext(
            state=ApplicationState(session_factory=factory, writer=MagicMock()),
            record=application.record,
        )

        cache = SettingsCache.load(context)

        assert cache.base == {}
        assert cache.global_ == {}
        assert db.query.call_count == 1

    def test_load_failure_raises_storage_error(self, application) -> None:
        context = ApplicationContext(
            state=ApplicationState(
                session_factory=MagicMock(side_effect=_db_error()), writer=MagicMock()
            ),
            record=application.record,
        )

        with pytest.raises(StorageError):
            SettingsCache.load(context)

    def test_refresh_picks_up_other_writers(self, application) -> None:
        cache = SettingsCache.load(application)
        other = SettingsCache.load(application)
        cache.set(USER, "theme", "dark", "123")

        other.set(GLOBAL, "theme", "light").result(timeout=5)
        cache.refresh()

        assert cache.get(GLOBAL, "theme") == "light"
        assert cache.get(USER, "theme", "123") == "dark"
