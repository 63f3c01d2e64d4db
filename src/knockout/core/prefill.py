"""
Prefill strategy for new sessions.

A new session starts from the user's most recent completed session of the
same exercise: for each planned set number that was logged there with
positive reps, the (reps, weight) pair is written as a real set record of
the new session.  Historical sets with zero or missing reps are never
copied.

Seeding is best effort.  The seed rows go in as one batch; if that fails,
any seed rows of the new session are removed again (failures there are only
logged) and the session simply starts with phantom slots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from ..io.serializers import parse_reps, row_to_session, row_to_set_record
from ..io.store import Store
from .models import COMPLETED, Session, SetRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedRow:
    """A (reps, weight) suggestion for one set number of a new session."""

    set_number: int
    reps: int
    weight: float | None

    def to_row(self, session_id: str) -> dict[str, Any]:
        return {
            "session_id": session_id,
            "set_number": self.set_number,
            "reps": self.reps,
            "weight": self.weight,
        }


async def last_completed_session(
    store: Store, user_id: str, exercise_id: str
) -> Session | None:
    """The user's most recently completed session for *exercise_id*, if any."""
    rows = await store.select(
        "sessions",
        {"user_id": user_id, "exercise_id": exercise_id, "status": COMPLETED},
        order_by="completed_at",
        descending=True,
        limit=1,
    )
    return row_to_session(rows[0]) if rows else None


def select_seeds(history_rows: Iterable[dict[str, Any]], planned_sets: int) -> list[SeedRow]:
    """
    Pick the historical sets worth copying.

    Args:
        history_rows: Raw session_sets rows of the previous session
        planned_sets: Planned set count of the new session

    Returns:
        Seeds for set numbers 1..planned_sets whose historical reps are positive
    """
    by_number: dict[int, dict[str, Any]] = {}
    for row in history_rows:
        by_number.setdefault(int(row["set_number"]), row)

    seeds: list[SeedRow] = []
    for n in range(1, planned_sets + 1):
        past = by_number.get(n)
        if past is None:
            continue
        reps = parse_reps(past.get("reps"))
        if reps is None:
            continue
        weight = past.get("weight")
        seeds.append(
            SeedRow(set_number=n, reps=reps, weight=float(weight) if weight is not None else None)
        )
    return seeds


async def prefill(
    store: Store, user_id: str, exercise_id: str, planned_sets: int
) -> list[SeedRow]:
    """
    Candidate seed rows for a new session of *exercise_id*.

    Returns an empty list when the user has no completed session of it.
    """
    last = await last_completed_session(store, user_id, exercise_id)
    if last is None:
        return []
    history_rows = await store.select("session_sets", {"session_id": last.id})
    seeds = select_seeds(history_rows, planned_sets)
    logger.debug(
        "Prefill for %s from session %s: %d of %d sets",
        exercise_id,
        last.id,
        len(seeds),
        planned_sets,
    )
    return seeds


async def apply_seeds(store: Store, session_id: str, seeds: list[SeedRow]) -> list[SetRecord]:
    """
    Write seed rows for a freshly created session.

    Never raises: a failed batch is logged and any partial rows of the
    session are removed, and a failed removal is only logged as well.

    Returns:
        The records written; empty if there were no seeds or seeding failed
    """
    if not seeds:
        return []
    try:
        rows = await store.insert_many("session_sets", [s.to_row(session_id) for s in seeds])
        return [row_to_set_record(r) for r in rows]
    except Exception:
        logger.warning(
            "Prefill failed for session %s; starting with empty slots",
            session_id,
            exc_info=True,
        )
    try:
        await store.delete("session_sets", {"session_id": session_id})
    except Exception:
        logger.error(
            "Could not clean up seed rows for session %s", session_id, exc_info=True
        )
    return []
