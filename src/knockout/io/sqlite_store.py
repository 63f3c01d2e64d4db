"""
SQLite backend for the table store, using aiosqlite.

Schema notes:
- ``one_active_session_per_user`` is a partial unique index, so two
  concurrent ``create`` calls for one user cannot both insert an
  in-progress session.
- ``session_sets`` carries ``CHECK (reps > 0)`` and
  ``UNIQUE (session_id, set_number)``; upserts target that key.
- Child rows cascade on delete (foreign keys are switched on per
  connection).
"""

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from pathlib import Path
from typing import Any

import aiosqlite

from .store import Row, Store, StoreError, UniqueViolation, new_id

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS exercises (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    muscle_group TEXT NOT NULL,
    equipment TEXT NOT NULL,
    is_curated INTEGER NOT NULL DEFAULT 1,
    created_by TEXT
);

CREATE TABLE IF NOT EXISTS exercise_favorites (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    exercise_id TEXT NOT NULL REFERENCES exercises(id),
    UNIQUE (user_id, exercise_id)
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE,
    rep_min INTEGER NOT NULL DEFAULT 10,
    rep_max INTEGER NOT NULL DEFAULT 20,
    active_routine_id TEXT,
    onboarding_completed_at TEXT
);

CREATE TABLE IF NOT EXISTS routines (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS routine_days (
    id TEXT PRIMARY KEY,
    routine_id TEXT NOT NULL REFERENCES routines(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    muscle_group TEXT NOT NULL,
    exercise_id TEXT NOT NULL REFERENCES exercises(id),
    planned_sets INTEGER NOT NULL CHECK (planned_sets BETWEEN 1 AND 20),
    sort_order INTEGER NOT NULL CHECK (sort_order >= 1)
);

CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    exercise_id TEXT NOT NULL REFERENCES exercises(id),
    status TEXT NOT NULL CHECK (status IN ('in_progress', 'completed')),
    planned_sets INTEGER NOT NULL CHECK (planned_sets BETWEEN 1 AND 20),
    started_at TEXT NOT NULL,
    completed_at TEXT,
    target_rep_min INTEGER NOT NULL DEFAULT 10,
    target_rep_max INTEGER NOT NULL DEFAULT 20
);

CREATE UNIQUE INDEX IF NOT EXISTS one_active_session_per_user
    ON sessions (user_id) WHERE status = 'in_progress';

CREATE TABLE IF NOT EXISTS session_sets (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    set_number INTEGER NOT NULL CHECK (set_number >= 1),
    reps INTEGER NOT NULL CHECK (reps > 0),
    weight REAL CHECK (weight IS NULL OR weight >= 0),
    UNIQUE (session_id, set_number)
);
"""

COLUMNS: dict[str, tuple[str, ...]] = {
    "exercises": ("id", "name", "muscle_group", "equipment", "is_curated", "created_by"),
    "exercise_favorites": ("id", "user_id", "exercise_id"),
    "profiles": (
        "id",
        "user_id",
        "rep_min",
        "rep_max",
        "active_routine_id",
        "onboarding_completed_at",
    ),
    "routines": ("id", "user_id", "name"),
    "routine_days": (
        "id",
        "routine_id",
        "title",
        "muscle_group",
        "exercise_id",
        "planned_sets",
        "sort_order",
    ),
    "sessions": (
        "id",
        "user_id",
        "exercise_id",
        "status",
        "planned_sets",
        "started_at",
        "completed_at",
        "target_rep_min",
        "target_rep_max",
    ),
    "session_sets": ("id", "session_id", "set_number", "reps", "weight"),
}

_UNIQUE_FAILED = re.compile(r"UNIQUE constraint failed: (.+)")


def _columns(table: str, names: Any) -> list[str]:
    """Validate column names against the schema (they are interpolated into SQL)."""
    try:
        known = COLUMNS[table]
    except KeyError:
        raise StoreError(f"Unknown table: {table}") from None
    names = list(names)
    unknown = [n for n in names if n not in known]
    if unknown:
        raise StoreError(f"{table}: unknown column(s) {unknown}")
    return names


def _where(table: str, filters: dict[str, Any] | None) -> tuple[str, list[Any]]:
    if not filters:
        return "", []
    cols = _columns(table, filters)
    # IS behaves like = for values and also matches NULL
    return " WHERE " + " AND ".join(f"{c} IS ?" for c in cols), [filters[c] for c in cols]


def _translate(table: str, exc: sqlite3.IntegrityError) -> StoreError:
    m = _UNIQUE_FAILED.search(str(exc))
    if m or "one_active_session_per_user" in str(exc):
        cols = (
            tuple(part.split(".")[-1].strip() for part in m.group(1).split(","))
            if m
            else ("user_id",)
        )
        return UniqueViolation(table, cols)
    return StoreError(f"{table}: {exc}")


class SqliteStore(Store):
    """
    Store backed by one aiosqlite connection.

    Use as ``async with SqliteStore(path) as store: ...`` or call
    :meth:`connect` and :meth:`close` explicitly.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path) if str(db_path) != ":memory:" else db_path
        self._conn: aiosqlite.Connection | None = None
        # one connection is shared, so each write transaction must run alone
        self._write_lock = asyncio.Lock()

    async def connect(self) -> "SqliteStore":
        if self._conn is not None:
            return self
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA foreign_keys = ON;")
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.debug("Opened SQLite store at %s", self.db_path)
        return self

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "SqliteStore":
        return await self.connect()

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError("SqliteStore is not connected; call connect() first")
        return self._conn

    async def _write(self, table: str, sql: str, params_seq: list[list[Any]]) -> int:
        """Run one statement per params list inside a single transaction."""
        total = 0
        async with self._write_lock:
            try:
                for params in params_seq:
                    cursor = await self.conn.execute(sql, params)
                    total += cursor.rowcount
                await self.conn.commit()
            except sqlite3.IntegrityError as exc:
                await self.conn.rollback()
                raise _translate(table, exc) from exc
            except sqlite3.Error as exc:
                await self.conn.rollback()
                raise StoreError(f"{table}: {exc}") from exc
        return total

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        where, params = _where(table, filters)
        sql = f"SELECT * FROM {table}{where}"
        if order_by is not None:
            _columns(table, [order_by])
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        try:
            async with self.conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"{table}: {exc}") from exc
        return [dict(r) for r in rows]

    async def insert(self, table: str, row: Row) -> Row:
        return (await self.insert_many(table, [row]))[0]

    async def insert_many(self, table: str, rows: list[Row]) -> list[Row]:
        if not rows:
            return []
        new_rows = [{"id": new_id(), **r} for r in rows]
        cols = _columns(table, new_rows[0])
        sql = (
            f"INSERT INTO {table} ({', '.join(cols)}) "
            f"VALUES ({', '.join('?' for _ in cols)})"
        )
        await self._write(table, sql, [[r.get(c) for c in cols] for r in new_rows])
        return new_rows

    async def update(self, table: str, filters: dict[str, Any], patch: Row) -> int:
        if not patch:
            return len(await self.select(table, filters))
        cols = _columns(table, patch)
        where, params = _where(table, filters)
        sql = f"UPDATE {table} SET {', '.join(f'{c} = ?' for c in cols)}{where}"
        return await self._write(table, sql, [[patch[c] for c in cols] + params])

    async def upsert(self, table: str, row: Row, conflict_key: tuple[str, ...]) -> Row:
        new_row = {"id": new_id(), **row}
        cols = _columns(table, new_row)
        key = _columns(table, conflict_key)
        updates = [c for c in cols if c != "id" and c not in key]
        sql = (
            f"INSERT INTO {table} ({', '.join(cols)}) "
            f"VALUES ({', '.join('?' for _ in cols)}) "
            f"ON CONFLICT ({', '.join(key)}) DO "
            + (
                "UPDATE SET " + ", ".join(f"{c} = excluded.{c}" for c in updates)
                if updates
                else "NOTHING"
            )
        )
        await self._write(table, sql, [[new_row[c] for c in cols]])
        stored = await self.select_one(table, {k: row[k] for k in key})
        if stored is None:
            raise StoreError(f"{table}: upsert did not persist a row")
        return stored

    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        where, params = _where(table, filters)
        return await self._write(table, f"DELETE FROM {table}{where}", [params])
