"""
Optimistic slot editing on top of SessionManager.

The editor holds a ComposedSession and lets a front end change slot values
locally, then commit them one slot at a time.  A commit applies the new
slot state right away and rolls it back if the save fails, so the visible
state never drifts from what is stored for longer than one failed call.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from ..io.serializers import is_blank, parse_reps
from .errors import NotFoundError
from .models import ComposedSession, SetSlot
from .sessions import SessionManager

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _local_weight(weight: Any) -> float | None:
    if weight is None or is_blank(weight):
        return None
    try:
        return float(weight)
    except (TypeError, ValueError):
        return None


class SlotEditor:
    """Local working copy of one in-progress session."""

    def __init__(self, manager: SessionManager, composed: ComposedSession):
        self.manager = manager
        self.composed = composed
        self.last_error: Exception | None = None
        # set_number -> (raw reps, raw weight) typed but not yet committed
        self._drafts: dict[int, tuple[Any, Any]] = {}

    @classmethod
    async def open(cls, manager: SessionManager) -> SlotEditor | None:
        """Editor for the user's active session, or None if there is none."""
        composed = await manager.get_active()
        return cls(manager, composed) if composed is not None else None

    @property
    def session_id(self) -> str:
        return self.composed.id

    @property
    def slots(self) -> tuple[SetSlot, ...]:
        return self.composed.slots

    def _slot(self, set_number: int) -> SetSlot:
        slot = self.composed.slot(set_number)
        if slot is None:
            raise NotFoundError(f"No slot {set_number} in session {self.session_id}")
        return slot

    def _put(self, slot: SetSlot) -> None:
        slots = tuple(slot if s.set_number == slot.set_number else s for s in self.slots)
        self.composed = replace(self.composed, slots=slots)

    def draft(self, set_number: int) -> tuple[Any, Any]:
        """Values that a commit of *set_number* would send."""
        slot = self._slot(set_number)
        return self._drafts.get(set_number, (slot.reps, slot.weight))

    def edit(self, set_number: int, reps: Any = _UNSET, weight: Any = _UNSET) -> SetSlot:
        """Change a slot locally.  Nothing is written until :meth:`commit`."""
        slot = self._slot(set_number)
        old_reps, old_weight = self.draft(set_number)
        new_reps = old_reps if reps is _UNSET else reps
        new_weight = old_weight if weight is _UNSET else weight
        self._drafts[set_number] = (new_reps, new_weight)
        return slot

    async def commit(self, set_number: int) -> bool:
        """
        Save one slot.

        The slot shows its committed state immediately (completed iff reps
        are valid).  If the save raises, the slot and its draft are restored
        and False is returned; ``last_error`` holds the exception.
        """
        slot = self._slot(set_number)
        snapshot = self.composed
        reps, weight = self.draft(set_number)
        parsed = parse_reps(reps)
        self._put(
            replace(
                slot,
                reps=parsed,
                weight=_local_weight(weight) if parsed is not None else None,
                completed=parsed is not None,
            )
        )
        try:
            await self.manager.save_slot(self.session_id, set_number, reps, weight)
        except Exception as exc:
            self.composed = snapshot
            self.last_error = exc
            logger.warning(
                "Save of set %d in session %s failed; reverted",
                set_number,
                self.session_id,
                exc_info=True,
            )
            return False

        self.last_error = None
        self._drafts.pop(set_number, None)
        await self.refresh()
        return True

    async def toggle_complete(self, set_number: int) -> bool:
        """
        Flip a slot's completed state.

        Completing persists the current values; un-completing persists empty
        reps, which removes the record.
        """
        slot = self._slot(set_number)
        if slot.completed:
            _, weight = self.draft(set_number)
            self._drafts[set_number] = ("", weight)
        return await self.commit(set_number)

    async def add_slot(self) -> SetSlot:
        last = self.slots[-1].set_number if self.slots else None
        slot = await self.manager.add_slot(self.session_id, after=last)
        self.composed = replace(self.composed, slots=self.slots + (slot,))
        return slot

    async def refresh(self) -> ComposedSession:
        """
        Recompose from the store.

        Locally added phantom slots past the stored end are kept.
        """
        fresh = await self.manager.get(self.session_id)
        last = fresh.slots[-1].set_number if fresh.slots else 0
        extra = tuple(s for s in self.slots if s.set_number > last and not s.completed)
        self.composed = replace(fresh, slots=fresh.slots + extra)
        return self.composed
