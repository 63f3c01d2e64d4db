"""
Row serialization for knockout models.

Handles conversion between dataclasses and the plain dict rows the store
exchanges, plus parsing of raw slot input (reps / weight fields as the user
typed them).
"""

import math
from typing import Any

from ..core.config import EQUIPMENT, MUSCLE_GROUPS, PLANNED_SETS_MAX, PLANNED_SETS_MIN
from ..core.errors import ValidationError
from ..core.models import (
    Exercise,
    Routine,
    RoutineDay,
    Session,
    SetRecord,
    UserProfile,
)


def validate_planned_sets(value: Any) -> int:
    """
    Validate a planned set count.

    Args:
        value: Count to validate

    Returns:
        The count as int

    Raises:
        ValidationError: If not an integer in the allowed range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"planned_sets must be an integer, got {value!r}")
    if not PLANNED_SETS_MIN <= value <= PLANNED_SETS_MAX:
        raise ValidationError(
            f"planned_sets must be between {PLANNED_SETS_MIN} and "
            f"{PLANNED_SETS_MAX}, got {value}"
        )
    return value


def validate_set_number(value: Any) -> int:
    """Validate a slot number (positive integer)."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"set_number must be a positive integer, got {value!r}")
    return value


def validate_muscle_group(value: str) -> str:
    if value not in MUSCLE_GROUPS:
        raise ValidationError(
            f"Invalid muscle group: {value!r}. Must be one of {MUSCLE_GROUPS}"
        )
    return value


def validate_equipment(value: str) -> str:
    if value not in EQUIPMENT:
        raise ValidationError(
            f"Invalid equipment: {value!r}. Must be one of {EQUIPMENT}"
        )
    return value


def validate_name(value: str, what: str = "name") -> str:
    """Strip a display name; blank names are rejected."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{what} must be a non-empty string")
    return value.strip()


# ---------------------------------------------------------------------------
# Slot input
# ---------------------------------------------------------------------------


def is_blank(value: Any) -> bool:
    """True for an empty input field (empty or whitespace-only string)."""
    return isinstance(value, str) and not value.strip()


def parse_reps(value: Any) -> int | None:
    """
    Interpret a reps field.

    Returns the rep count when it is a positive whole number (int, integral
    float, or numeric string), otherwise None.  Zero, negatives, blanks and
    garbage all mean "no valid reps".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def parse_weight(value: Any) -> float:
    """
    Parse a non-blank weight field.

    Raises:
        ValidationError: If the value is not a finite, non-negative number
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid weight: {value!r}")
    try:
        weight = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid weight: {value!r}") from e
    if not math.isfinite(weight) or weight < 0:
        raise ValidationError(f"weight must be a non-negative number, got {value!r}")
    return weight


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------


def exercise_to_row(exercise: Exercise) -> dict[str, Any]:
    """Convert an Exercise to a row; ``is_favorite`` is per user and never stored."""
    return {
        "id": exercise.id,
        "name": exercise.name,
        "muscle_group": exercise.muscle_group,
        "equipment": exercise.equipment,
        "is_curated": exercise.is_curated,
        "created_by": exercise.created_by,
    }


def row_to_exercise(row: dict[str, Any], is_favorite: bool = False) -> Exercise:
    return Exercise(
        id=row["id"],
        name=row["name"],
        muscle_group=row["muscle_group"],
        equipment=row["equipment"],
        is_curated=bool(row.get("is_curated", True)),
        created_by=row.get("created_by"),
        is_favorite=is_favorite,
    )


# ---------------------------------------------------------------------------
# Routines
# ---------------------------------------------------------------------------


def row_to_routine_day(row: dict[str, Any]) -> RoutineDay:
    return RoutineDay(
        id=row["id"],
        routine_id=row["routine_id"],
        title=row["title"],
        muscle_group=row["muscle_group"],
        exercise_id=row["exercise_id"],
        planned_sets=int(row["planned_sets"]),
        sort_order=int(row["sort_order"]),
    )


def row_to_routine(row: dict[str, Any], day_rows: list[dict[str, Any]]) -> Routine:
    days = sorted(
        (row_to_routine_day(d) for d in day_rows), key=lambda d: d.sort_order
    )
    return Routine(id=row["id"], user_id=row["user_id"], name=row["name"], days=days)


def row_to_profile(row: dict[str, Any]) -> UserProfile:
    return UserProfile(
        user_id=row["user_id"],
        rep_min=int(row.get("rep_min") or 10),
        rep_max=int(row.get("rep_max") or 20),
        active_routine_id=row.get("active_routine_id"),
        onboarding_completed_at=row.get("onboarding_completed_at"),
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def row_to_session(row: dict[str, Any]) -> Session:
    return Session(
        id=row["id"],
        user_id=row["user_id"],
        exercise_id=row["exercise_id"],
        status=row["status"],
        planned_sets=int(row["planned_sets"]),
        started_at=row["started_at"],
        completed_at=row.get("completed_at"),
        target_rep_min=int(row.get("target_rep_min") or 10),
        target_rep_max=int(row.get("target_rep_max") or 20),
    )


def row_to_set_record(row: dict[str, Any]) -> SetRecord:
    """
    Convert a session_sets row to a SetRecord.

    Raises:
        ValidationError: If the row breaks the positive-reps invariant
    """
    try:
        return SetRecord(
            id=row["id"],
            session_id=row["session_id"],
            set_number=int(row["set_number"]),
            reps=int(row["reps"]),
            weight=float(row["weight"]) if row.get("weight") is not None else None,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid session_sets row {row.get('id')!r}: {e}") from e
