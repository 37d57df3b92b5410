"""Batch reconciler — resolve natural keys to existing rows, then upsert in one statement.

Subclasses describe one record kind: its table, natural key, scope filter and
how a record becomes a row. ``reconcile`` then runs exactly one lookup and
one upsert, so re-running the same batch refreshes values without creating
duplicates (idempotent by natural key).

Errors are logged and rolled back; callers get a row count, not an exception.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Hashable, Iterable, Sequence
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Table
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from layerstore.ingestion.batch_statement import AUTO_ID, BatchUpsert, KeyLookup
from layerstore.util import unix_timestamp

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")
ScopeT = TypeVar("ScopeT")

# Id meaning "no stored row for this natural key".
NOT_FOUND = 0


class BatchReconciler(ABC, Generic[RecordT, ScopeT]):
    """Shared lookup + upsert engine for externally keyed records."""

    #: Table being written.
    table: ClassVar[Table]
    #: Natural key columns, in the order ``natural_key`` returns them.
    key_columns: ClassVar[tuple[str, ...]]
    #: Positional row layout handed to BatchUpsert (must start with "id").
    row_columns: ClassVar[tuple[str, ...]]
    #: Columns refreshed from the incoming row when the natural key exists.
    update_columns: ClassVar[tuple[str, ...]]
    #: Unique constraint columns (scope + natural key); never updated.
    conflict_columns: ClassVar[tuple[str, ...]]

    @property
    def label(self) -> str:
        return self.table.name

    @abstractmethod
    def natural_key(self, record: RecordT) -> Hashable:
        """Natural key of *record*; a tuple when ``key_columns`` has several."""

    @abstractmethod
    def scope_filter(self, scope: ScopeT) -> Sequence[ColumnElement]:
        """WHERE conditions restricting the lookup to *scope*."""

    @abstractmethod
    def build_row(
        self, record: RecordT, scope: ScopeT, existing_id: int, timestamp: int
    ) -> Sequence[Any]:
        """Row values in ``row_columns`` order."""

    def lookup_statement(self, scope: ScopeT, keys: Iterable[Hashable]):
        lookup = KeyLookup(self.table, self.key_columns)
        for key in keys:
            lookup.add_key(key)
        return lookup.build(*self.scope_filter(scope))

    def existing(self, db: Session, scope: ScopeT, keys: Iterable[Hashable]) -> dict:
        """Map every key in *keys* to its stored row id, ``0`` when not stored.

        One query with an IN list sized to the keys. On query failure the
        error is logged and every key maps to ``0``.
        """
        results = {key: NOT_FOUND for key in keys}
        if not results:
            return results

        try:
            rows = db.execute(self.lookup_statement(scope, results)).all()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Read %s error: %s", self.label, e)
            return results

        for row in rows:
            row_id, *key_values = row
            key = tuple(key_values) if len(key_values) > 1 else key_values[0]
            if key in results:
                results[key] = row_id
        return results

    def reconcile(self, db: Session, batch: Sequence[RecordT], scope: ScopeT) -> int:
        """Insert missing records and refresh existing ones in one upsert.

        Returns the number of rows written (0 for an empty batch or on failure).
        When a natural key repeats inside *batch*, the last record wins.
        """
        if not batch:
            return 0

        by_key: dict[Hashable, RecordT] = {}
        for record in batch:
            by_key[self.natural_key(record)] = record

        existing = self.existing(db, scope, by_key)
        timestamp = unix_timestamp()

        upsert = BatchUpsert(
            self.table,
            self.row_columns,
            conflict_columns=self.conflict_columns,
            update_columns=self.update_columns,
            extra_updates={"updated_at": timestamp, "deleted_at": 0},
        )
        for key, record in by_key.items():
            upsert.add_row(self.build_row(record, scope, existing.get(key, NOT_FOUND), timestamp))

        try:
            db.execute(upsert.build(db.get_bind().dialect.name))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Write %s error: %s", self.label, e)
            return 0

        inserted = sum(1 for row_id in existing.values() if row_id == NOT_FOUND)
        logger.info(
            "%s upserted: count=%d inserted=%d updated=%d",
            self.label,
            len(upsert),
            inserted,
            len(upsert) - inserted,
        )
        return len(upsert)


def resolve_id(existing_id: int) -> Any:
    """Row id for an upsert row: the stored id, or AUTO_ID for new rows."""
    return existing_id if existing_id != NOT_FOUND else AUTO_ID
