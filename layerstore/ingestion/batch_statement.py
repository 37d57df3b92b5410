"""Typed builders for batch statements.

``KeyLookup`` builds the "which of these natural keys already exist" SELECT
with an IN list sized to the batch. ``BatchUpsert`` builds one multi-row
INSERT with the dialect's conflict clause. Values are always bound
parameters; every row is checked against the declared column arity.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from typing import Any

from sqlalchemy import Select, Table, literal_column, select, tuple_
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.sql.elements import ColumnElement

_UPSERT_DIALECTS = ("postgresql", "sqlite", "mysql", "mariadb")


class AutoId:
    """Placeholder for "let storage assign the id" in an upsert row."""

    def __repr__(self) -> str:
        return "AUTO_ID"


AUTO_ID = AutoId()


def _auto_id_expression(dialect_name: str) -> Any:
    # SQLite assigns a rowid for NULL; PostgreSQL and MySQL accept DEFAULT in VALUES.
    if dialect_name == "sqlite":
        return None
    return literal_column("DEFAULT")


class KeyLookup:
    """SELECT id + natural key columns for a batch of keys within a scope."""

    def __init__(
        self,
        table: Table,
        key_columns: Sequence[str],
        *,
        id_column: str = "id",
    ):
        if not key_columns:
            raise ValueError("KeyLookup needs at least one key column")
        self.table = table
        self.key_columns = tuple(key_columns)
        self.id_column = id_column
        self._keys: list[tuple] = []

    @property
    def arity(self) -> int:
        return len(self.key_columns)

    def add_key(self, key: Hashable) -> None:
        """Add one natural key: a scalar for single-column keys, else a tuple."""
        values = key if isinstance(key, tuple) else (key,)
        if len(values) != self.arity:
            raise ValueError(
                f"Key {key!r} has {len(values)} value(s); expected {self.arity} "
                f"for columns {self.key_columns}"
            )
        self._keys.append(tuple(values))

    def __len__(self) -> int:
        return len(self._keys)

    def build(self, *scope: ColumnElement) -> Select:
        """SELECT id, key columns WHERE scope AND key IN (...)."""
        if not self._keys:
            raise ValueError("KeyLookup has no keys")
        columns = [self.table.c[name] for name in self.key_columns]
        if self.arity == 1:
            key_filter = columns[0].in_([k[0] for k in self._keys])
        else:
            key_filter = tuple_(*columns).in_(self._keys)
        return (
            select(self.table.c[self.id_column], *columns)
            .select_from(self.table)
            .where(*scope)
            .where(key_filter)
        )


class BatchUpsert:
    """Multi-row INSERT ... ON CONFLICT/ON DUPLICATE KEY UPDATE builder.

    ``columns`` is the positional layout of every row. ``conflict_columns``
    name the natural key (the unique constraint the conflict is detected on)
    and are never updated; ``update_columns`` are copied from the incoming row
    on conflict. ``extra_updates`` are literal column values applied on
    conflict (e.g. ``updated_at``).
    """

    def __init__(
        self,
        table: Table,
        columns: Sequence[str],
        *,
        conflict_columns: Sequence[str],
        update_columns: Sequence[str],
        extra_updates: dict[str, Any] | None = None,
        id_column: str = "id",
    ):
        unknown = [c for c in (*columns, *conflict_columns, *update_columns) if c not in table.c]
        if unknown:
            raise ValueError(f"Unknown columns for {table.name}: {unknown}")
        overlap = set(conflict_columns) & (set(update_columns) | set(extra_updates or {}))
        if overlap:
            raise ValueError(f"Conflict key columns cannot be updated: {sorted(overlap)}")
        self.table = table
        self.columns = tuple(columns)
        self.conflict_columns = tuple(conflict_columns)
        self.update_columns = tuple(update_columns)
        self.extra_updates = dict(extra_updates or {})
        self.id_column = id_column
        self._rows: list[tuple] = []

    @property
    def arity(self) -> int:
        return len(self.columns)

    def add_row(self, values: Sequence[Any]) -> None:
        """Append one row of bind values in ``columns`` order."""
        if len(values) != self.arity:
            raise ValueError(
                f"Row has {len(values)} value(s); expected {self.arity} for {self.columns}"
            )
        self._rows.append(tuple(values))

    def __len__(self) -> int:
        return len(self._rows)

    def build(self, dialect_name: str):
        """Return the dialect-specific insert statement for all added rows."""
        if not self._rows:
            raise ValueError("BatchUpsert has no rows")
        if dialect_name not in _UPSERT_DIALECTS:
            raise ValueError(f"Upsert is not supported for dialect {dialect_name!r}")

        auto_id = _auto_id_expression(dialect_name)
        rows = []
        for row in self._rows:
            values = dict(zip(self.columns, row))
            if self.id_column in values and values[self.id_column] is AUTO_ID:
                values[self.id_column] = auto_id
            rows.append(values)

        if dialect_name in ("mysql", "mariadb"):
            stmt = mysql.insert(self.table).values(rows)
            incoming = stmt.inserted
            updates = {name: incoming[name] for name in self.update_columns}
            updates.update(self.extra_updates)
            return stmt.on_duplicate_key_update(updates)

        insert = postgresql.insert if dialect_name == "postgresql" else sqlite.insert
        stmt = insert(self.table).values(rows)
        incoming = stmt.excluded
        updates = {name: incoming[name] for name in self.update_columns}
        updates.update(self.extra_updates)
        return stmt.on_conflict_do_update(
            index_elements=[self.table.c[name] for name in self.conflict_columns],
            set_=updates,
        )
