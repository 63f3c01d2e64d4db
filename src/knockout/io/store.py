"""
Table store contract and in-memory backend.

The engine talks to persistence only through :class:`Store`: per named
table it can select with equality filters and a single ordering field,
insert, update, upsert on a conflict key, and delete.  Rows are plain
dicts.  Inserts assign a uuid4 hex ``id`` when the row has none.

Uniqueness rules (including the partial "one in-progress session per user"
rule) are declared once in ``UNIQUE_CONSTRAINTS`` and enforced by every
backend, so callers never rely on check-then-write.
"""

from __future__ import annotations

import copy
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable

Row = dict[str, Any]

TABLES: tuple[str, ...] = (
    "exercises",
    "exercise_favorites",
    "profiles",
    "routines",
    "routine_days",
    "sessions",
    "session_sets",
)


class StoreError(Exception):
    """Raised when the backing store fails or is misused."""

    pass


class UniqueViolation(StoreError):
    """Raised when a write would break a uniqueness rule."""

    def __init__(self, table: str, columns: tuple[str, ...]):
        super().__init__(f"{table}: duplicate value for ({', '.join(columns)})")
        self.table = table
        self.columns = columns


@dataclass(frozen=True)
class UniqueConstraint:
    """
    Columns whose combined value must be unique.

    When ``where`` is set the rule only covers rows matching it (a partial
    unique index).
    """

    columns: tuple[str, ...]
    where: dict[str, Any] = field(default_factory=dict)

    def covers(self, row: Row) -> bool:
        return all(row.get(k) == v for k, v in self.where.items())

    def key(self, row: Row) -> tuple:
        return tuple(row.get(c) for c in self.columns)


UNIQUE_CONSTRAINTS: dict[str, tuple[UniqueConstraint, ...]] = {
    "sessions": (UniqueConstraint(("user_id",), where={"status": "in_progress"}),),
    "session_sets": (UniqueConstraint(("session_id", "set_number")),),
    "exercise_favorites": (UniqueConstraint(("user_id", "exercise_id")),),
    "profiles": (UniqueConstraint(("user_id",)),),
}


def new_id() -> str:
    """Return a fresh row id."""
    return uuid.uuid4().hex


def matches(row: Row, filters: dict[str, Any] | None) -> bool:
    """True if *row* equals every value in *filters*."""
    if not filters:
        return True
    return all(row.get(k) == v for k, v in filters.items())


def sort_rows(rows: list[Row], order_by: str | None, descending: bool) -> list[Row]:
    """Order rows by one field; None sorts first ascending, last descending."""
    if order_by is None:
        return rows
    return sorted(
        rows,
        key=lambda r: (r.get(order_by) is not None, r.get(order_by)),
        reverse=descending,
    )


class Store(ABC):
    """Async table store used by every engine component."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        """Return rows equal to *filters*, optionally ordered and limited."""

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert one row and return it as stored."""

    @abstractmethod
    async def insert_many(self, table: str, rows: list[Row]) -> list[Row]:
        """Insert several rows; either all are written or none are."""

    @abstractmethod
    async def update(self, table: str, filters: dict[str, Any], patch: Row) -> int:
        """Apply *patch* to matching rows; return how many matched."""

    @abstractmethod
    async def upsert(self, table: str, row: Row, conflict_key: tuple[str, ...]) -> Row:
        """Insert *row*, or update the row sharing its *conflict_key* values."""

    @abstractmethod
    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        """Delete matching rows; return how many were removed."""

    async def select_one(self, table: str, filters: dict[str, Any]) -> Row | None:
        rows = await self.select(table, filters, limit=1)
        return rows[0] if rows else None

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> "Store":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class MemoryStore(Store):
    """
    Dict-backed store.

    Every method body runs without awaiting, so each call is atomic with
    respect to other tasks on the event loop.
    """

    def __init__(self) -> None:
        self._tables: dict[str, list[Row]] = {name: [] for name in TABLES}

    def _table(self, table: str) -> list[Row]:
        try:
            return self._tables[table]
        except KeyError:
            raise StoreError(f"Unknown table: {table}") from None

    def _check_unique(self, table: str, rows: Iterable[Row]) -> None:
        """Raise UniqueViolation if *rows* (the would-be table) break a rule."""
        rows = list(rows)
        ids = [r["id"] for r in rows]
        if len(ids) != len(set(ids)):
            raise UniqueViolation(table, ("id",))
        for constraint in UNIQUE_CONSTRAINTS.get(table, ()):
            seen: set[tuple] = set()
            for r in rows:
                if not constraint.covers(r):
                    continue
                key = constraint.key(r)
                if key in seen:
                    raise UniqueViolation(table, constraint.columns)
                seen.add(key)

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        rows = [copy.deepcopy(r) for r in self._table(table) if matches(r, filters)]
        rows = sort_rows(rows, order_by, descending)
        return rows[:limit] if limit is not None else rows

    async def insert(self, table: str, row: Row) -> Row:
        return (await self.insert_many(table, [row]))[0]

    async def insert_many(self, table: str, rows: list[Row]) -> list[Row]:
        existing = self._table(table)
        new_rows = [{"id": new_id(), **copy.deepcopy(r)} for r in rows]
        self._check_unique(table, existing + new_rows)
        existing.extend(new_rows)
        return [copy.deepcopy(r) for r in new_rows]

    async def update(self, table: str, filters: dict[str, Any], patch: Row) -> int:
        existing = self._table(table)
        candidate = [
            {**r, **copy.deepcopy(patch)} if matches(r, filters) else r
            for r in existing
        ]
        self._check_unique(table, candidate)
        count = sum(1 for r in existing if matches(r, filters))
        self._tables[table] = candidate
        return count

    async def upsert(self, table: str, row: Row, conflict_key: tuple[str, ...]) -> Row:
        existing = self._table(table)
        key_filter = {k: row[k] for k in conflict_key}
        for i, current in enumerate(existing):
            if matches(current, key_filter):
                merged = {**current, **copy.deepcopy(row), "id": current["id"]}
                candidate = existing[:i] + [merged] + existing[i + 1:]
                self._check_unique(table, candidate)
                self._tables[table] = candidate
                return copy.deepcopy(merged)
        return await self.insert(table, row)

    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        existing = self._table(table)
        kept = [r for r in existing if not matches(r, filters)]
        self._tables[table] = kept
        return len(existing) - len(kept)
