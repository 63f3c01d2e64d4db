"""
Set persistence policy.

Decides what a committed slot edit does to storage:

- reps is not a positive whole number -> delete the record for
  ``(session_id, set_number)`` if one exists (the slot reverts to phantom)
- otherwise -> upsert the record keyed by ``(session_id, set_number)``

Weight handling on a valid save depends on the exercise: body-weight sets
always store NULL; equipment sets need a number, and a missing or empty
field is resolved by the empty-weight policy (``zero`` stores 0.0,
``reject`` raises ValidationError).

Writes for the same key are serialized with one asyncio.Lock per key, so
rapid successive edits land in call order (last write wins).
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Awaitable, Literal

from ..io.serializers import is_blank, parse_reps, parse_weight, validate_set_number
from ..io.store import Store
from .config import EmptyWeightPolicy
from .errors import ValidationError

logger = logging.getLogger(__name__)

SaveOutcome = Literal["upserted", "deleted"]

SET_KEY: tuple[str, str] = ("session_id", "set_number")


def resolve_weight(
    weight: Any, policy: EmptyWeightPolicy, body_weight: bool = False
) -> float | None:
    """
    Weight to store for a valid save.

    NULL is reserved for body-weight exercises, so *weight* is ignored there.

    Raises:
        ValidationError: For negative/non-numeric weights, or a missing
            weight under the ``reject`` policy
    """
    if body_weight:
        return None
    if weight is None or is_blank(weight):
        if policy == "reject":
            raise ValidationError("weight is required for this set")
        return 0.0
    return parse_weight(weight)


class SetPersistencePolicy:
    """Applies slot edits to the session_sets table."""

    def __init__(self, store: Store, empty_weight_policy: EmptyWeightPolicy = "zero"):
        self.store = store
        self.empty_weight_policy = empty_weight_policy
        self._locks: weakref.WeakValueDictionary[tuple[str, int], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._background: set[asyncio.Task] = set()

    def _lock_for(self, session_id: str, set_number: int) -> asyncio.Lock:
        key = (session_id, set_number)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def save(
        self,
        session_id: str,
        set_number: int,
        reps: Any,
        weight: Any = None,
        body_weight: bool = False,
    ) -> SaveOutcome:
        """
        Persist or clear one slot.

        Args:
            session_id: Owning session
            set_number: Slot number (positive)
            reps: Raw reps value (int, str, None, ...)
            weight: Raw weight value; None or "" for an empty field
            body_weight: The session's exercise uses no equipment

        Returns:
            "upserted" if a record now exists, "deleted" if none does

        Raises:
            ValidationError: Bad set number or weight (nothing is written)
        """
        validate_set_number(set_number)
        parsed_reps = parse_reps(reps)
        key_filter = {"session_id": session_id, "set_number": set_number}

        lock = self._lock_for(session_id, set_number)
        async with lock:
            if parsed_reps is None:
                removed = await self.store.delete("session_sets", key_filter)
                if removed:
                    logger.debug("Cleared set %d of session %s", set_number, session_id)
                return "deleted"

            stored_weight = resolve_weight(weight, self.empty_weight_policy, body_weight)
            await self.store.upsert(
                "session_sets",
                {**key_filter, "reps": parsed_reps, "weight": stored_weight},
                SET_KEY,
            )
            logger.debug(
                "Saved set %d of session %s: %d reps @ %s",
                set_number,
                session_id,
                parsed_reps,
                "BW" if stored_weight is None else stored_weight,
            )
            return "upserted"

    async def _quietly(
        self, save: Awaitable[SaveOutcome], session_id: str, set_number: int
    ) -> SaveOutcome | None:
        try:
            return await save
        except Exception:
            logger.warning(
                "Background save of set %d in session %s failed",
                set_number,
                session_id,
                exc_info=True,
            )
            return None

    def run_in_background(
        self, save: Awaitable[SaveOutcome], session_id: str, set_number: int
    ) -> asyncio.Task:
        """
        Run an already built save as a tracked task.

        Failures are logged and swallowed; the task result is the outcome,
        or None when the save failed.  :meth:`drain` waits for the task.
        Must be called from a running loop.
        """
        task = asyncio.get_running_loop().create_task(
            self._quietly(save, session_id, set_number)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def save_in_background(
        self,
        session_id: str,
        set_number: int,
        reps: Any,
        weight: Any = None,
        body_weight: bool = False,
    ) -> asyncio.Task:
        """Fire-and-forget :meth:`save` for keystroke/blur driven edits."""
        return self.run_in_background(
            self.save(session_id, set_number, reps, weight, body_weight),
            session_id,
            set_number,
        )

    async def drain(self) -> None:
        """Wait for every pending background save."""
        while self._background:
            await asyncio.gather(*list(self._background))
