"""
Exercise library: curated catalog, user-created exercises and favorites.

Curated exercises are shared by every user and seeded from the bundled
catalog.  User-created exercises are visible to (and editable by) their
creator only.  Exercises are never hard-deleted since sessions and routine
days keep pointing at them.
"""

from __future__ import annotations

import logging

from ..io.serializers import (
    exercise_to_row,
    row_to_exercise,
    validate_equipment,
    validate_muscle_group,
    validate_name,
)
from ..io.store import Row, Store
from .catalog import load_curated_exercises
from .errors import NotFoundError
from .models import Exercise

logger = logging.getLogger(__name__)


def _matches_search(row: Row, needle: str) -> bool:
    group = row["muscle_group"]
    return (
        needle in row["name"].lower()
        or needle in group
        or needle in group.replace("_", " ")
    )


async def seed_catalog(store: Store) -> int:
    """
    Upsert the bundled curated exercises by id.

    Returns:
        Number of curated exercises written
    """
    exercises = load_curated_exercises()
    for exercise in exercises:
        await store.upsert("exercises", exercise_to_row(exercise), ("id",))
    logger.info("Seeded %d curated exercises", len(exercises))
    return len(exercises)


class ExerciseLibrary:
    """Exercises as seen by one user."""

    def __init__(self, store: Store, user_id: str):
        self.store = store
        self.user_id = user_id

    async def _favorite_ids(self) -> set[str]:
        rows = await self.store.select("exercise_favorites", {"user_id": self.user_id})
        return {r["exercise_id"] for r in rows}

    def _visible(self, row: Row) -> bool:
        return bool(row.get("is_curated")) or row.get("created_by") == self.user_id

    async def list_exercises(
        self,
        muscle_group: str | None = None,
        equipment: str | None = None,
        search: str | None = None,
    ) -> list[Exercise]:
        """
        Curated exercises plus the user's own, sorted by name.

        Args:
            muscle_group: Only this muscle group
            equipment: Only this equipment
            search: Case-insensitive substring of the name or muscle group
        """
        filters = {}
        if muscle_group is not None:
            filters["muscle_group"] = validate_muscle_group(muscle_group)
        if equipment is not None:
            filters["equipment"] = validate_equipment(equipment)

        favorites = await self._favorite_ids()
        needle = search.strip().lower() if search else ""
        result = []
        for row in await self.store.select("exercises", filters, order_by="name"):
            if not self._visible(row):
                continue
            if needle and not _matches_search(row, needle):
                continue
            result.append(row_to_exercise(row, is_favorite=row["id"] in favorites))
        return result

    async def get_exercise(self, exercise_id: str) -> Exercise:
        row = await self.store.select_one("exercises", {"id": exercise_id})
        if row is None or not self._visible(row):
            raise NotFoundError(f"Exercise not found: {exercise_id}")
        return row_to_exercise(row, is_favorite=exercise_id in await self._favorite_ids())

    async def create_exercise(self, name: str, muscle_group: str, equipment: str) -> Exercise:
        row = await self.store.insert(
            "exercises",
            {
                "name": validate_name(name, "Exercise name"),
                "muscle_group": validate_muscle_group(muscle_group),
                "equipment": validate_equipment(equipment),
                "is_curated": False,
                "created_by": self.user_id,
            },
        )
        logger.info("User %s created exercise %s", self.user_id, row["id"])
        return row_to_exercise(row)

    async def update_exercise(
        self,
        exercise_id: str,
        name: str | None = None,
        muscle_group: str | None = None,
        equipment: str | None = None,
    ) -> Exercise:
        """
        Edit a user-created exercise.

        Raises:
            NotFoundError: Unknown exercise, curated, or created by someone else
        """
        row = await self.store.select_one(
            "exercises", {"id": exercise_id, "created_by": self.user_id}
        )
        if row is None or row.get("is_curated"):
            raise NotFoundError(f"Exercise not found: {exercise_id}")
        patch = {}
        if name is not None:
            patch["name"] = validate_name(name, "Exercise name")
        if muscle_group is not None:
            patch["muscle_group"] = validate_muscle_group(muscle_group)
        if equipment is not None:
            patch["equipment"] = validate_equipment(equipment)
        if patch:
            await self.store.update("exercises", {"id": exercise_id}, patch)
        return await self.get_exercise(exercise_id)

    async def set_favorite(self, exercise_id: str, is_favorite: bool) -> Exercise:
        await self.get_exercise(exercise_id)
        key = {"user_id": self.user_id, "exercise_id": exercise_id}
        if is_favorite:
            await self.store.upsert("exercise_favorites", key, ("user_id", "exercise_id"))
        else:
            await self.store.delete("exercise_favorites", key)
        return await self.get_exercise(exercise_id)
