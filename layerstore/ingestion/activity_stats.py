"""Member activity stats — per-character statistics for activity instances.

Natural key within a character is (instance_id, name). Stats for an instance
arrive as a batch from the activity history feed and are upserted together.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from layerstore.ingestion.reconciler import NOT_FOUND, BatchReconciler, resolve_id
from layerstore.models.member_activity_stat import STAT_DISPLAY_WIDTH, MemberActivityStat
from layerstore.schemas.ingestion import NewActivityStat
from layerstore.util import truncate

logger = logging.getLogger(__name__)

_stats = MemberActivityStat.__table__


@dataclass(frozen=True)
class CharacterKey:
    """Parent scope: one character of a membership."""

    membership_id: int
    character_id: int


@dataclass(frozen=True)
class ActivityStatResult:
    membership_id: int
    instance_id: int
    value: float
    value_display: str


@dataclass(frozen=True)
class StatFilter:
    """Optional extra condition for ``get_instances``.

    Use ``StatFilter.by_value(...)``, ``StatFilter.by_display(...)`` or
    ``StatFilter.none()``.
    """

    value: float | None = None
    value_display: str | None = None

    @classmethod
    def by_value(cls, value: float) -> StatFilter:
        return cls(value=value)

    @classmethod
    def by_display(cls, value_display: str) -> StatFilter:
        return cls(value_display=value_display)

    @classmethod
    def none(cls) -> StatFilter:
        return cls()


class ActivityStatsReconciler(BatchReconciler[NewActivityStat, CharacterKey]):
    table = _stats
    key_columns = ("instance_id", "name")
    row_columns = (
        "id",
        "membership_id",
        "character_id",
        "instance_id",
        "name",
        "value",
        "value_display",
        "created_at",
        "updated_at",
        "deleted_at",
    )
    update_columns = ("value", "value_display")
    conflict_columns = ("character_id", "instance_id", "name")

    def natural_key(self, record: NewActivityStat) -> tuple[int, str]:
        return (record.instance_id, record.name)

    def scope_filter(self, scope: CharacterKey):
        return [_stats.c.character_id == scope.character_id]

    def build_row(
        self,
        record: NewActivityStat,
        scope: CharacterKey,
        existing_id: int,
        timestamp: int,
    ) -> Sequence[Any]:
        is_new = existing_id == NOT_FOUND
        return (
            resolve_id(existing_id),
            scope.membership_id,
            scope.character_id,
            record.instance_id,
            record.name,
            record.value,
            truncate(record.value_display, STAT_DISPLAY_WIDTH),
            timestamp if is_new else 0,
            0 if is_new else timestamp,
            0,
        )


_reconciler = ActivityStatsReconciler()


def existing(
    db: Session, character_id: int, instance_ids: Sequence[int]
) -> dict[tuple[int, str], int]:
    """Map (instance_id, name) to row id for every stat stored under *instance_ids*."""
    if not instance_ids:
        return {}

    stmt = select(_stats.c.id, _stats.c.instance_id, _stats.c.name).where(
        _stats.c.character_id == character_id,
        _stats.c.instance_id.in_(list(instance_ids)),
    )
    try:
        rows = db.execute(stmt).all()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Read member_activity_stats error: %s", e)
        return {}
    return {(row.instance_id, row.name): row.id for row in rows}


def write(db: Session, scope: CharacterKey, stats: Sequence[NewActivityStat]) -> int:
    """Upsert *stats* for the character in *scope*. Returns rows written; errors are logged."""
    return _reconciler.reconcile(db, stats, scope)


def get_instances(
    db: Session,
    stat: str,
    membership_id: int,
    instance_ids: Sequence[int],
    value_filter: StatFilter | None = None,
) -> list[ActivityStatResult]:
    """Distinct (membership, instance, value, display) rows for *stat* in *instance_ids*."""
    if not instance_ids:
        return []

    columns = (
        _stats.c.membership_id,
        _stats.c.instance_id,
        _stats.c.value,
        _stats.c.value_display,
    )
    stmt = select(*columns).where(
        _stats.c.name == stat,
        _stats.c.membership_id == membership_id,
        _stats.c.deleted_at == 0,
        _stats.c.instance_id.in_(list(instance_ids)),
    )
    if value_filter is not None:
        if value_filter.value is not None:
            stmt = stmt.where(_stats.c.value == value_filter.value)
        elif value_filter.value_display is not None:
            stmt = stmt.where(_stats.c.value_display == value_filter.value_display)
    stmt = stmt.group_by(*columns)

    try:
        rows = db.execute(stmt).all()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Read member_activity_stats error: %s", e)
        return []
    return [
        ActivityStatResult(
            membership_id=row.membership_id,
            instance_id=row.instance_id,
            value=row.value,
            value_display=row.value_display,
        )
        for row in rows
    ]
