"""
Routine ordering and routine collection management.

RoutineOrderManager keeps the days of one routine at contiguous positions
1..N: every structural change (swap, delete, append) ends with a full
renumber of the routine rather than a local patch.

RoutineLibrary manages the user's set of routines and the active-routine
reference on the profile.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from ..io.serializers import (
    row_to_routine,
    row_to_routine_day,
    validate_name,
    validate_planned_sets,
)
from ..io.store import Store
from .config import DEFAULT_PLANNED_SETS, PLANNED_SETS_MAX, PLANNED_SETS_MIN
from .errors import NotFoundError, ValidationError
from .models import Direction, Routine, RoutineDay
from .profiles import load_profile, update_profile

logger = logging.getLogger(__name__)

_STEP: dict[str, int] = {"up": -1, "down": 1}


class RoutineOrderManager:
    """Entry-level operations within the routines of one user."""

    def __init__(self, store: Store, user_id: str):
        self.store = store
        self.user_id = user_id

    async def _check_routine(self, routine_id: str) -> None:
        row = await self.store.select_one(
            "routines", {"id": routine_id, "user_id": self.user_id}
        )
        if row is None:
            raise NotFoundError(f"Routine not found: {routine_id}")

    async def _day(self, day_id: str) -> RoutineDay:
        row = await self.store.select_one("routine_days", {"id": day_id})
        if row is None:
            raise NotFoundError(f"Routine entry not found: {day_id}")
        day = row_to_routine_day(row)
        await self._check_routine(day.routine_id)
        return day

    async def days(self, routine_id: str) -> list[RoutineDay]:
        """Entries of a routine in position order."""
        await self._check_routine(routine_id)
        rows = await self.store.select("routine_days", {"routine_id": routine_id})
        days = [row_to_routine_day(r) for r in rows]
        # id breaks ties so a corrupted ordering still renumbers deterministically
        return sorted(days, key=lambda d: (d.sort_order, d.id))

    async def _write_positions(self, days: list[RoutineDay]) -> list[RoutineDay]:
        """Give *days* positions 1..N in list order, writing only changed rows."""
        renumbered: list[RoutineDay] = []
        for position, day in enumerate(days, 1):
            if day.sort_order != position:
                await self.store.update(
                    "routine_days", {"id": day.id}, {"sort_order": position}
                )
                day = replace(day, sort_order=position)
            renumbered.append(day)
        return renumbered

    async def renumber(self, routine_id: str) -> list[RoutineDay]:
        """Rewrite positions of a routine to 1..N in their current order."""
        return await self._write_positions(await self.days(routine_id))

    async def reorder(
        self, routine_id: str, direction: Direction, index: int
    ) -> list[RoutineDay]:
        """
        Swap the entry at *index* (0-based) with its neighbour.

        ``up`` moves it towards position 1, ``down`` away from it.  An index
        or neighbour outside the list is a no-op, not an error.

        Returns:
            The routine's entries in their new order

        Raises:
            ValidationError: Unknown direction
            NotFoundError: Unknown routine
        """
        if direction not in _STEP:
            raise ValidationError(f"Invalid direction: {direction!r}. Must be 'up' or 'down'")
        days = await self.days(routine_id)
        target = index + _STEP[direction]
        if not (0 <= index < len(days) and 0 <= target < len(days)):
            logger.debug("Reorder %s %s at %d is out of bounds", routine_id, direction, index)
            return days
        days[index], days[target] = days[target], days[index]
        return await self._write_positions(days)

    async def add_entry(
        self,
        routine_id: str,
        exercise_id: str,
        planned_sets: int = DEFAULT_PLANNED_SETS,
    ) -> RoutineDay:
        """Append an exercise to the end of a routine (title and muscle group come from it)."""
        validate_planned_sets(planned_sets)
        days = await self.days(routine_id)
        exercise = await self.store.select_one("exercises", {"id": exercise_id})
        if exercise is None:
            raise NotFoundError(f"Exercise not found: {exercise_id}")
        row = await self.store.insert(
            "routine_days",
            {
                "routine_id": routine_id,
                "title": exercise["name"],
                "muscle_group": exercise["muscle_group"],
                "exercise_id": exercise_id,
                "planned_sets": planned_sets,
                "sort_order": len(days) + 1,
            },
        )
        await self._write_positions(days)
        return row_to_routine_day(row)

    async def delete_entry(self, day_id: str) -> list[RoutineDay]:
        """Remove one entry and close the gap; returns the remaining entries."""
        day = await self._day(day_id)
        await self.store.delete("routine_days", {"id": day_id})
        return await self.renumber(day.routine_id)

    async def update_planned_sets(self, day_id: str, count: int) -> bool:
        """
        Change an entry's planned set count.

        Counts outside 1..20 are ignored.

        Returns:
            True if the count was written
        """
        if (
            isinstance(count, bool)
            or not isinstance(count, int)
            or not PLANNED_SETS_MIN <= count <= PLANNED_SETS_MAX
        ):
            logger.debug("Ignoring planned_sets=%r for entry %s", count, day_id)
            return False
        await self._day(day_id)
        await self.store.update("routine_days", {"id": day_id}, {"planned_sets": count})
        return True


class RoutineLibrary:
    """The user's routines and which one is active."""

    def __init__(self, store: Store, user_id: str):
        self.store = store
        self.user_id = user_id
        self.entries = RoutineOrderManager(store, user_id)

    async def _load(self, row: dict) -> Routine:
        day_rows = await self.store.select("routine_days", {"routine_id": row["id"]})
        return row_to_routine(row, day_rows)

    async def list_routines(self) -> list[Routine]:
        rows = await self.store.select("routines", {"user_id": self.user_id}, order_by="name")
        return [await self._load(r) for r in rows]

    async def get_routine(self, routine_id: str) -> Routine:
        row = await self.store.select_one(
            "routines", {"id": routine_id, "user_id": self.user_id}
        )
        if row is None:
            raise NotFoundError(f"Routine not found: {routine_id}")
        return await self._load(row)

    async def create_routine(self, name: str) -> Routine:
        row = await self.store.insert(
            "routines", {"user_id": self.user_id, "name": validate_name(name, "Routine name")}
        )
        logger.info("Created routine %s", row["id"])
        return Routine(id=row["id"], user_id=self.user_id, name=row["name"], days=[])

    async def rename_routine(self, routine_id: str, name: str) -> Routine:
        name = validate_name(name, "Routine name")
        await self.get_routine(routine_id)
        await self.store.update("routines", {"id": routine_id}, {"name": name})
        return await self.get_routine(routine_id)

    async def delete_routine(self, routine_id: str) -> None:
        """
        Delete a routine and its entries.

        Raises:
            NotFoundError: Unknown or foreign routine
            ValidationError: It is the user's last routine, or the active one
        """
        await self.get_routine(routine_id)
        remaining = await self.store.select("routines", {"user_id": self.user_id})
        if len(remaining) <= 1:
            raise ValidationError("Cannot delete your last routine.")
        profile = await load_profile(self.store, self.user_id)
        if profile.active_routine_id == routine_id:
            raise ValidationError(
                "Cannot delete your active routine. Switch to another routine first."
            )
        await self.store.delete("routine_days", {"routine_id": routine_id})
        await self.store.delete("routines", {"id": routine_id})
        logger.info("Deleted routine %s", routine_id)

    async def set_active_routine(self, routine_id: str) -> None:
        await self.get_routine(routine_id)
        await update_profile(self.store, self.user_id, active_routine_id=routine_id)

    async def active_routine(self) -> Routine | None:
        profile = await load_profile(self.store, self.user_id)
        if profile.active_routine_id is None:
            return None
        try:
            return await self.get_routine(profile.active_routine_id)
        except NotFoundError:
            logger.warning(
                "Active routine %s of user %s no longer exists",
                profile.active_routine_id,
                self.user_id,
            )
            return None
