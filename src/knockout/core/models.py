"""
Data models for knockout.

Persisted entities (exercises, routines, sessions, set records) and the
composed, read-only slot view handed to callers.  Set completion is never
stored: a slot is completed iff a set record exists for its number.
"""

from dataclasses import dataclass, field
from typing import Literal

from .config import (
    DEFAULT_REP_MAX,
    DEFAULT_REP_MIN,
    EQUIPMENT,
    MUSCLE_GROUPS,
    PLANNED_SETS_MAX,
    PLANNED_SETS_MIN,
)

SessionStatus = Literal["in_progress", "completed"]
Direction = Literal["up", "down"]

IN_PROGRESS: SessionStatus = "in_progress"
COMPLETED: SessionStatus = "completed"


def _check_planned_sets(value: int) -> None:
    if not PLANNED_SETS_MIN <= value <= PLANNED_SETS_MAX:
        raise ValueError(
            f"planned_sets must be between {PLANNED_SETS_MIN} and "
            f"{PLANNED_SETS_MAX}, got {value}"
        )


@dataclass
class Exercise:
    """
    A movement that sessions and routine days point at.

    ``is_favorite`` is derived per user from the favorites table and is
    never written back to the exercise row.
    """

    id: str
    name: str
    muscle_group: str
    equipment: str
    is_curated: bool = True
    created_by: str | None = None  # None for curated content
    is_favorite: bool = False

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Exercise name must be non-empty")
        if self.muscle_group not in MUSCLE_GROUPS:
            raise ValueError(f"Invalid muscle_group: {self.muscle_group}")
        if self.equipment not in EQUIPMENT:
            raise ValueError(f"Invalid equipment: {self.equipment}")


@dataclass
class RoutineDay:
    """One entry of a routine: an exercise with a planned set count and a position."""

    id: str
    routine_id: str
    title: str
    muscle_group: str
    exercise_id: str
    planned_sets: int
    sort_order: int

    def __post_init__(self) -> None:
        _check_planned_sets(self.planned_sets)
        if self.sort_order < 1:
            raise ValueError("sort_order must be positive")


@dataclass
class Routine:
    """A named, ordered collection of routine days owned by one user."""

    id: str
    user_id: str
    name: str
    days: list[RoutineDay] = field(default_factory=list)

    @property
    def ordered_days(self) -> list[RoutineDay]:
        """Days sorted by position, never by insertion."""
        return sorted(self.days, key=lambda d: d.sort_order)


@dataclass
class UserProfile:
    """
    The slice of the (externally stored) user profile this engine reads.

    ``active_routine_id`` must be None or name a routine owned by the same user.
    """

    user_id: str
    rep_min: int = DEFAULT_REP_MIN
    rep_max: int = DEFAULT_REP_MAX
    active_routine_id: str | None = None
    onboarding_completed_at: str | None = None

    def __post_init__(self) -> None:
        if self.rep_min <= 0 or self.rep_max < self.rep_min:
            raise ValueError(
                f"Invalid rep range: {self.rep_min}-{self.rep_max}"
            )


@dataclass(frozen=True)
class Session:
    """
    One workout attempt at a single exercise.

    Timestamps are UTC ISO-8601 strings.  The target rep range is
    informational only.
    """

    id: str
    user_id: str
    exercise_id: str
    status: SessionStatus
    planned_sets: int
    started_at: str
    completed_at: str | None = None
    target_rep_min: int = DEFAULT_REP_MIN
    target_rep_max: int = DEFAULT_REP_MAX

    def __post_init__(self) -> None:
        if self.status not in (IN_PROGRESS, COMPLETED):
            raise ValueError(f"Invalid session status: {self.status}")
        _check_planned_sets(self.planned_sets)

    @property
    def is_in_progress(self) -> bool:
        return self.status == IN_PROGRESS


@dataclass(frozen=True)
class SetRecord:
    """
    A persisted set.

    A record with non-positive reps must never exist.  ``weight`` is None
    for body-weight work, otherwise a non-negative load.
    """

    id: str
    session_id: str
    set_number: int
    reps: int
    weight: float | None = None

    def __post_init__(self) -> None:
        if self.set_number < 1:
            raise ValueError("set_number must be positive")
        if self.reps <= 0:
            raise ValueError("reps must be positive")
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")


@dataclass(frozen=True)
class SetSlot:
    """
    One row of the dense slot view.

    Phantom slots (no record yet) have ``reps=None``, ``weight=None`` and
    ``completed=False``.
    """

    id: str
    session_id: str
    set_number: int
    reps: int | None
    weight: float | None
    completed: bool

    @property
    def is_phantom(self) -> bool:
        return not self.completed


@dataclass(frozen=True)
class ComposedSession:
    """A session header plus its slots, ascending by set number."""

    session: Session
    slots: tuple[SetSlot, ...] = ()

    @property
    def id(self) -> str:
        return self.session.id

    @property
    def active_slot(self) -> SetSlot | None:
        """First incomplete slot, or the last slot when every slot is done."""
        for slot in self.slots:
            if not slot.completed:
                return slot
        return self.slots[-1] if self.slots else None

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.slots if s.completed)

    @property
    def next_set_number(self) -> int:
        """Set number a newly added slot would take."""
        return (self.slots[-1].set_number if self.slots else 0) + 1

    def slot(self, set_number: int) -> SetSlot | None:
        for s in self.slots:
            if s.set_number == set_number:
                return s
        return None
