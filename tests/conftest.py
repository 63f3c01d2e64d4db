"""Shared fixtures for the knockout test suite."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from knockout.core.exercises import seed_catalog
from knockout.core.sessions import SessionManager
from knockout.io.store import MemoryStore

USER = "alice"


class FakeClock:
    """Deterministic UTC clock: every call is one minute later than the last."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> str:
        self.now += timedelta(minutes=1)
        return self.now.isoformat()


@pytest_asyncio.fixture
async def store():
    """In-memory store with the curated catalog loaded."""
    s = MemoryStore()
    await seed_catalog(s)
    return s


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(store, clock):
    return SessionManager(store, USER, clock=clock)


async def log_completed_session(
    manager: SessionManager,
    exercise_id: str,
    sets: list[tuple[int, float | None]],
    planned_sets: int | None = None,
):
    """Create, fill and complete a session; returns the completed ComposedSession."""
    composed = await manager.create(exercise_id, planned_sets or max(len(sets), 1))
    for n, (reps, weight) in enumerate(sets, 1):
        await manager.save_slot(composed.id, n, reps, weight)
    return await manager.complete(composed.id)
