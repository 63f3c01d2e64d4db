"""
Set slot composer.

Turns the sparse set records of a session into the dense slot list callers
see.  The plan is a lower bound: records beyond ``planned_sets`` are always
shown, and every number in between without a record becomes a phantom slot.
"""

from typing import Iterable

from .config import PHANTOM_ID_PREFIX
from .models import ComposedSession, Session, SetRecord, SetSlot


def phantom_slot_id(session_id: str, set_number: int) -> str:
    """Synthetic id for a slot with no record (record ids are uuid4 hex, never prefixed)."""
    return f"{PHANTOM_ID_PREFIX}-{session_id}-{set_number}"


def phantom_slot(session_id: str, set_number: int) -> SetSlot:
    """An empty, incomplete slot."""
    return SetSlot(
        id=phantom_slot_id(session_id, set_number),
        session_id=session_id,
        set_number=set_number,
        reps=None,
        weight=None,
        completed=False,
    )


def record_slot(record: SetRecord) -> SetSlot:
    """A completed slot mirroring a persisted record."""
    return SetSlot(
        id=record.id,
        session_id=record.session_id,
        set_number=record.set_number,
        reps=record.reps,
        weight=record.weight,
        completed=True,
    )


def total_slots(planned_sets: int, records: Iterable[SetRecord]) -> int:
    """max(planned_sets, highest recorded set number)."""
    max_existing = max((r.set_number for r in records), default=0)
    return max(planned_sets, max_existing)


def compose(session: Session, records: Iterable[SetRecord]) -> ComposedSession:
    """
    Build the slot view for one session.

    Args:
        session: Session header (provides planned_sets)
        records: Persisted set records of this session, in any order

    Returns:
        ComposedSession whose slots are numbered 1..N with no gaps, ascending,
        where N = max(planned_sets, highest recorded set number)
    """
    by_number: dict[int, SetRecord] = {}
    for record in records:
        by_number.setdefault(record.set_number, record)

    count = total_slots(session.planned_sets, by_number.values())
    slots = tuple(
        record_slot(by_number[n]) if n in by_number else phantom_slot(session.id, n)
        for n in range(1, count + 1)
    )
    return ComposedSession(session=session, slots=slots)
