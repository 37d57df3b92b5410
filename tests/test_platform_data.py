"""Tests for account platform data reconciliation (idempotent batch upsert)."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from layerstore.ingestion import platform_data
from layerstore.ingestion.platform_data import AccountPlatformKey
from layerstore.models import Account, AccountPlatform, AccountPlatformData
from layerstore.schemas.ingestion import NewAccountPlatformData
from layerstore.services import identity


def _account_platform(db: Session, platform: str = "discord") -> AccountPlatformKey:
    account = Account(hash=identity.mint("account"), created_at=1)
    db.add(account)
    db.commit()
    link = AccountPlatform(
        account=account.id,
        hash=identity.mint("platform", platform),
        platform=platform,
        platform_user="user#1",
        created_at=1,
    )
    db.add(link)
    db.commit()
    return AccountPlatformKey.from_model(link)


def _rows(db: Session, scope: AccountPlatformKey) -> list[AccountPlatformData]:
    db.expire_all()
    return (
        db.query(AccountPlatformData)
        .filter(
            AccountPlatformData.account == scope.account_id,
            AccountPlatformData.platform == scope.platform_id,
        )
        .order_by(AccountPlatformData.key)
        .all()
    )


@pytest.fixture
def scope(db: Session) -> AccountPlatformKey:
    return _account_platform(db)


def test_insert_then_update_same_key(db: Session, scope: AccountPlatformKey) -> None:
    """Second write for K1 updates the row instead of adding one."""
    platform_data.write(db, scope, [NewAccountPlatformData(key="K1", value="V1")])
    first = _rows(db, scope)
    assert [(r.key, r.value) for r in first] == [("K1", "V1")]
    row_id = first[0].id

    platform_data.write(db, scope, [NewAccountPlatformData(key="K1", value="V2")])

    rows = _rows(db, scope)
    assert [(r.id, r.key, r.value, r.value_big) for r in rows] == [(row_id, "K1", "V2", "V2")]
    assert rows[0].updated_at > 0


def test_write_is_idempotent(db: Session, scope: AccountPlatformKey) -> None:
    batch = [
        NewAccountPlatformData(key="display_name", value="Guardian"),
        NewAccountPlatformData(key="level", value="50"),
        NewAccountPlatformData(key="clan", value="Level Crush"),
    ]

    assert platform_data.write(db, scope, batch) == 3
    once = [(r.id, r.key, r.value, r.value_bigint, r.value_big) for r in _rows(db, scope)]
    assert platform_data.write(db, scope, batch) == 3
    twice = [(r.id, r.key, r.value, r.value_bigint, r.value_big) for r in _rows(db, scope)]

    assert once == twice
    assert len(twice) == 3


def test_mixed_batch_inserts_missing_and_refreshes_existing(
    db: Session, scope: AccountPlatformKey
) -> None:
    platform_data.write(db, scope, [NewAccountPlatformData(key="a", value="1")])
    created_at = _rows(db, scope)[0].created_at

    platform_data.write(
        db,
        scope,
        [NewAccountPlatformData(key="a", value="2"), NewAccountPlatformData(key="b", value="3")],
    )

    rows = _rows(db, scope)
    assert [(r.key, r.value) for r in rows] == [("a", "2"), ("b", "3")]
    assert rows[0].created_at == created_at
    assert rows[1].updated_at == 0


def test_long_value_truncated_for_display_only(db: Session, scope: AccountPlatformKey) -> None:
    raw = "x" * 200 + "y" * 100

    platform_data.write(db, scope, [NewAccountPlatformData(key="bio", value=raw)])

    row = _rows(db, scope)[0]
    assert row.value == raw[:255]
    assert len(row.value) == 255
    assert row.value_big == raw


def test_numeric_variant(db: Session, scope: AccountPlatformKey) -> None:
    platform_data.write(
        db,
        scope,
        [
            NewAccountPlatformData(key="level", value="1850"),
            NewAccountPlatformData(key="name", value="Guardian"),
        ],
    )

    values = {r.key: r.value_bigint for r in _rows(db, scope)}
    assert values == {"level": 1850, "name": 0}


def test_scopes_are_isolated(db: Session, scope: AccountPlatformKey) -> None:
    other = _account_platform(db, platform="bungie")

    platform_data.write(db, scope, [NewAccountPlatformData(key="K1", value="discord")])
    platform_data.write(db, other, [NewAccountPlatformData(key="K1", value="bungie")])

    assert [r.value for r in _rows(db, scope)] == ["discord"]
    assert [r.value for r in _rows(db, other)] == ["bungie"]


def test_duplicate_keys_in_batch_last_wins(db: Session, scope: AccountPlatformKey) -> None:
    count = platform_data.write(
        db,
        scope,
        [NewAccountPlatformData(key="K1", value="first"), NewAccountPlatformData(key="K1", value="last")],
    )

    assert count == 1
    assert [r.value for r in _rows(db, scope)] == ["last"]


def test_soft_deleted_row_is_revived(db: Session, scope: AccountPlatformKey) -> None:
    platform_data.write(db, scope, [NewAccountPlatformData(key="K1", value="V1")])
    db.query(AccountPlatformData).update({"deleted_at": 5})
    db.commit()

    platform_data.write(db, scope, [NewAccountPlatformData(key="K1", value="V2")])

    rows = _rows(db, scope)
    assert [(r.value, r.deleted_at) for r in rows] == [("V2", 0)]


def test_empty_batch_is_noop(db: Session, scope: AccountPlatformKey) -> None:
    assert platform_data.write(db, scope, []) == 0
    assert _rows(db, scope) == []


# ── read ─────────────────────────────────────────────────────────────


def test_read_maps_every_key(db: Session, scope: AccountPlatformKey) -> None:
    platform_data.write(db, scope, [NewAccountPlatformData(key="a", value="1")])
    stored_id = _rows(db, scope)[0].id

    result = platform_data.read(db, scope, ["a", "b"])

    assert result == {"a": stored_id, "b": 0}


def test_read_ignores_deleted_accounts(db: Session, scope: AccountPlatformKey) -> None:
    platform_data.write(db, scope, [NewAccountPlatformData(key="a", value="1")])
    db.query(Account).filter(Account.id == scope.account_id).update({"deleted_at": 9})
    db.commit()

    assert platform_data.read(db, scope, ["a"]) == {"a": 0}


def test_read_empty_keys(db: Session, scope: AccountPlatformKey) -> None:
    assert platform_data.read(db, scope, []) == {}


# ── failures ─────────────────────────────────────────────────────────


def test_query_failure_is_logged_not_raised(caplog) -> None:
    db = MagicMock()
    db.get_bind.return_value.dialect.name = "sqlite"
    db.execute.side_effect = OperationalError("INSERT", {}, Exception("db down"))

    count = platform_data.write(
        db, AccountPlatformKey(1, 2), [NewAccountPlatformData(key="K1", value="V1")]
    )

    assert count == 0
    assert "Read account_platform_data error" in caplog.text
    assert "Write account_platform_data error" in caplog.text
    db.commit.assert_not_called()
    assert db.rollback.call_count == 2
