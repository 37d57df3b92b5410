"""Account platform data — batched key/value attributes per account platform.

Each (account, platform, key) has one row. ``value`` holds a display copy cut
to PLATFORM_VALUE_WIDTH characters, ``value_big`` the raw value and
``value_bigint`` its integer reading (0 when not an integer).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from layerstore.ingestion.reconciler import NOT_FOUND, BatchReconciler, resolve_id
from layerstore.models.account import (
    PLATFORM_VALUE_WIDTH,
    Account,
    AccountPlatform,
    AccountPlatformData,
)
from layerstore.schemas.ingestion import NewAccountPlatformData
from layerstore.util import parse_bigint, truncate

_data = AccountPlatformData.__table__
_platforms = AccountPlatform.__table__
_accounts = Account.__table__


@dataclass(frozen=True)
class AccountPlatformKey:
    """Parent scope: an account and one of its platform links."""

    account_id: int
    platform_id: int

    @classmethod
    def from_model(cls, row: AccountPlatform) -> AccountPlatformKey:
        return cls(account_id=row.account, platform_id=row.id)


class PlatformDataReconciler(BatchReconciler[NewAccountPlatformData, AccountPlatformKey]):
    table = _data
    key_columns = ("key",)
    row_columns = (
        "id",
        "account",
        "platform",
        "key",
        "value",
        "value_bigint",
        "value_big",
        "created_at",
        "updated_at",
        "deleted_at",
    )
    update_columns = ("value", "value_big", "value_bigint")
    conflict_columns = ("account", "platform", "key")

    def natural_key(self, record: NewAccountPlatformData) -> str:
        return record.key

    def scope_filter(self, scope: AccountPlatformKey):
        return [_data.c.account == scope.account_id, _data.c.platform == scope.platform_id]

    def lookup_statement(self, scope: AccountPlatformKey, keys):
        # Only data under a live account counts as existing.
        stmt = super().lookup_statement(scope, keys)
        return stmt.join(_platforms, _data.c.platform == _platforms.c.id).join(
            _accounts,
            (_platforms.c.account == _accounts.c.id) & (_accounts.c.deleted_at == 0),
        )

    def build_row(
        self,
        record: NewAccountPlatformData,
        scope: AccountPlatformKey,
        existing_id: int,
        timestamp: int,
    ) -> Sequence[Any]:
        is_new = existing_id == NOT_FOUND
        return (
            resolve_id(existing_id),
            scope.account_id,
            scope.platform_id,
            record.key,
            truncate(record.value, PLATFORM_VALUE_WIDTH),
            parse_bigint(record.value),
            record.value,
            timestamp if is_new else 0,
            0 if is_new else timestamp,
            0,
        )


_reconciler = PlatformDataReconciler()


def read(db: Session, scope: AccountPlatformKey, keys: Sequence[str]) -> dict[str, int]:
    """Map each key to its stored row id under *scope* (0 when absent)."""
    return _reconciler.existing(db, scope, keys)


def write(db: Session, scope: AccountPlatformKey, values: Sequence[NewAccountPlatformData]) -> int:
    """Upsert *values* for *scope*. Returns rows written; errors are logged."""
    return _reconciler.reconcile(db, values, scope)
