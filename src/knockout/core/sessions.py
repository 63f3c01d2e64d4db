"""
Session lifecycle manager.

Owns creation, the one-active-session rule, slot growth, completion and
discard of a user's sessions::

    in_progress --complete--> completed   (terminal)
    in_progress --discard---> (row removed)

The one-active-session rule is enforced by the store's partial unique
constraint at insert time; a violation surfaces as ConflictError.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from ..io.serializers import row_to_session, row_to_set_record, validate_planned_sets
from ..io.store import Store, UniqueViolation
from .composer import compose, phantom_slot
from .config import BODY_WEIGHT, PLANNED_SETS_MAX, EmptyWeightPolicy, Settings
from .errors import ConflictError, NotFoundError, ValidationError
from .models import COMPLETED, IN_PROGRESS, ComposedSession, Session, SetRecord, SetSlot
from .persistence import SaveOutcome, SetPersistencePolicy
from .prefill import apply_seeds, prefill
from .profiles import load_profile

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionManager:
    """Session operations on behalf of one user."""

    def __init__(
        self,
        store: Store,
        user_id: str,
        empty_weight_policy: EmptyWeightPolicy = "zero",
        grow_planned_sets: bool = False,
        clock: Callable[[], str] = utc_now,
    ):
        self.store = store
        self.user_id = user_id
        self.grow_planned_sets = grow_planned_sets
        self.policy = SetPersistencePolicy(store, empty_weight_policy)
        self._clock = clock

    @classmethod
    def from_settings(cls, store: Store, settings: Settings) -> "SessionManager":
        return cls(
            store,
            settings.user_id,
            empty_weight_policy=settings.empty_weight_policy,
            grow_planned_sets=settings.grow_planned_sets,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _records(self, session_id: str) -> list[SetRecord]:
        records: list[SetRecord] = []
        for row in await self.store.select("session_sets", {"session_id": session_id}):
            try:
                records.append(row_to_set_record(row))
            except ValidationError:
                logger.warning("Ignoring invalid set row %s", row.get("id"), exc_info=True)
        return records

    async def _compose(self, session: Session) -> ComposedSession:
        return compose(session, await self._records(session.id))

    async def _owned(self, session_id: str) -> Session:
        row = await self.store.select_one(
            "sessions", {"id": session_id, "user_id": self.user_id}
        )
        if row is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return row_to_session(row)

    async def _owned_in_progress(self, session_id: str) -> Session:
        session = await self._owned(session_id)
        if not session.is_in_progress:
            raise ConflictError(f"Session {session_id} is already completed", session_id)
        return session

    async def get_active(self) -> ComposedSession | None:
        """The user's in-progress session, composed, or None.  Read only."""
        row = await self.store.select_one(
            "sessions", {"user_id": self.user_id, "status": IN_PROGRESS}
        )
        if row is None:
            return None
        return await self._compose(row_to_session(row))

    async def get(self, session_id: str) -> ComposedSession:
        return await self._compose(await self._owned(session_id))

    async def history(
        self, exercise_id: str | None = None, limit: int | None = None
    ) -> list[ComposedSession]:
        """Completed sessions, most recently completed first."""
        filters: dict[str, Any] = {"user_id": self.user_id, "status": COMPLETED}
        if exercise_id is not None:
            filters["exercise_id"] = exercise_id
        rows = await self.store.select(
            "sessions", filters, order_by="completed_at", descending=True, limit=limit
        )
        return [await self._compose(row_to_session(r)) for r in rows]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create(self, exercise_id: str, planned_sets: int) -> ComposedSession:
        """
        Start a session and seed it from the last completed one.

        Raises:
            ValidationError: planned_sets outside 1..20
            NotFoundError: Unknown exercise
            ConflictError: Another session is in progress (``session_id``
                names it)
        """
        validate_planned_sets(planned_sets)
        if await self.store.select_one("exercises", {"id": exercise_id}) is None:
            raise NotFoundError(f"Exercise not found: {exercise_id}")

        profile = await load_profile(self.store, self.user_id)

        try:
            seeds = await prefill(self.store, self.user_id, exercise_id, planned_sets)
        except Exception:
            logger.warning("Prefill lookup failed for %s", exercise_id, exc_info=True)
            seeds = []

        try:
            row = await self.store.insert(
                "sessions",
                {
                    "user_id": self.user_id,
                    "exercise_id": exercise_id,
                    "status": IN_PROGRESS,
                    "planned_sets": planned_sets,
                    "started_at": self._clock(),
                    "completed_at": None,
                    "target_rep_min": profile.rep_min,
                    "target_rep_max": profile.rep_max,
                },
            )
        except UniqueViolation as exc:
            active = await self.store.select_one(
                "sessions", {"user_id": self.user_id, "status": IN_PROGRESS}
            )
            raise ConflictError(
                "A session is already in progress",
                session_id=active["id"] if active else None,
            ) from exc

        session = row_to_session(row)
        records = await apply_seeds(self.store, session.id, seeds)

        logger.info(
            "Started session %s (%s, %d sets, %d prefilled)",
            session.id,
            exercise_id,
            planned_sets,
            len(records),
        )
        return compose(session, records)

    async def add_slot(self, session_id: str, after: int | None = None) -> SetSlot:
        """
        Append a phantom slot after the current last slot.

        Nothing is written for the slot itself; it becomes durable once it
        receives valid reps.  A caller holding unsaved phantom slots of its
        own passes its last set number as *after*, so the new slot lands
        past those too.  With ``grow_planned_sets`` the stored plan is
        raised to cover the new slot (up to the planned-set maximum).
        """
        session = await self._owned_in_progress(session_id)
        composed = await self._compose(session)
        set_number = composed.next_set_number
        if after is not None:
            set_number = max(set_number, after + 1)
        if (
            self.grow_planned_sets
            and session.planned_sets < set_number <= PLANNED_SETS_MAX
        ):
            await self.store.update(
                "sessions", {"id": session_id}, {"planned_sets": set_number}
            )
        return phantom_slot(session_id, set_number)

    async def _is_body_weight(self, exercise_id: str) -> bool:
        row = await self.store.select_one("exercises", {"id": exercise_id})
        return row is not None and row["equipment"] == BODY_WEIGHT

    async def save_slot(
        self, session_id: str, set_number: int, reps: Any, weight: Any = None
    ) -> SaveOutcome:
        """
        Commit one slot through the persistence policy (errors propagate).

        Weight is stored as NULL for body-weight exercises whatever the
        caller sends; for equipment exercises a missing weight goes through
        the empty-weight policy.

        Raises:
            NotFoundError: Unknown or foreign session
            ConflictError: Session already completed
            ValidationError: Bad set number or weight
        """
        session = await self._owned_in_progress(session_id)
        body_weight = await self._is_body_weight(session.exercise_id)
        return await self.policy.save(session_id, set_number, reps, weight, body_weight)

    def save_slot_in_background(
        self, session_id: str, set_number: int, reps: Any, weight: Any = None
    ) -> asyncio.Task:
        """
        Fire-and-forget variant of :meth:`save_slot`.

        The same ownership and in-progress checks apply; any failure is
        logged and the task resolves to None.
        """
        return self.policy.run_in_background(
            self.save_slot(session_id, set_number, reps, weight), session_id, set_number
        )

    async def complete(self, session_id: str) -> ComposedSession:
        """
        Finish an in-progress session.  Unfilled slots are allowed.

        Raises:
            NotFoundError: Unknown or foreign session
            ConflictError: Session already completed
        """
        await self.policy.drain()
        matched = await self.store.update(
            "sessions",
            {"id": session_id, "user_id": self.user_id, "status": IN_PROGRESS},
            {"status": COMPLETED, "completed_at": self._clock()},
        )
        if not matched:
            await self._owned_in_progress(session_id)
        logger.info("Completed session %s", session_id)
        return await self.get(session_id)

    async def discard(self, session_id: str) -> None:
        """
        Delete an in-progress session and all of its set records.

        Raises:
            NotFoundError: Unknown or foreign session
            ConflictError: Session already completed
        """
        await self._owned_in_progress(session_id)
        await self.policy.drain()
        await self.store.delete("session_sets", {"session_id": session_id})
        await self.store.delete("sessions", {"id": session_id, "status": IN_PROGRESS})
        logger.info("Discarded session %s", session_id)
