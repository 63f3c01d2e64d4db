"""
First-run onboarding: copy stock routines for the user's equipment.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from ..io.serializers import row_to_routine, validate_equipment
from ..io.store import Store
from .catalog import StockRoutine, load_stock_routines
from .models import Routine
from .profiles import load_profile, update_profile
from .sessions import utc_now

logger = logging.getLogger(__name__)


async def copy_stock_routine(store: Store, user_id: str, stock: StockRoutine) -> Routine | None:
    """
    Create a user-owned copy of *stock*.

    Days whose exercise is not in the store are skipped; positions of the
    remaining days are 1..N.  Returns None if no day could be copied.
    """
    day_rows = []
    for day in stock.days:
        exercise = await store.select_one("exercises", {"id": day.exercise_id})
        if exercise is None:
            logger.warning(
                "Stock routine %r refers to unknown exercise %s; skipping day",
                stock.name,
                day.exercise_id,
            )
            continue
        day_rows.append(
            {
                "title": day.title,
                "muscle_group": exercise["muscle_group"],
                "exercise_id": day.exercise_id,
                "planned_sets": day.planned_sets,
                "sort_order": len(day_rows) + 1,
            }
        )
    if not day_rows:
        return None

    routine_row = await store.insert("routines", {"user_id": user_id, "name": stock.name})
    written = await store.insert_many(
        "routine_days", [{**d, "routine_id": routine_row["id"]} for d in day_rows]
    )
    return row_to_routine(routine_row, written)


async def complete_onboarding(
    store: Store,
    user_id: str,
    equipment: Iterable[str],
    clock: Callable[[], str] = utc_now,
) -> list[Routine]:
    """
    Give the user a routine per selected equipment type and mark onboarding done.

    The first copied routine becomes active unless the user already has an
    active routine.

    Raises:
        ValidationError: Unknown equipment value
    """
    selected = [validate_equipment(e) for e in equipment]
    stock_by_equipment = {s.equipment: s for s in load_stock_routines()}

    copied: list[Routine] = []
    for item in dict.fromkeys(selected):
        stock = stock_by_equipment.get(item)
        if stock is None:
            logger.debug("No stock routine for %s", item)
            continue
        routine = await copy_stock_routine(store, user_id, stock)
        if routine is not None:
            copied.append(routine)

    profile = await load_profile(store, user_id)
    fields = {"onboarding_completed_at": clock()}
    if profile.active_routine_id is None and copied:
        fields["active_routine_id"] = copied[0].id
    await update_profile(store, user_id, **fields)

    logger.info(
        "Onboarding done for %s: %d routine(s) from %s",
        user_id,
        len(copied),
        ", ".join(selected) or "no equipment",
    )
    return copied
