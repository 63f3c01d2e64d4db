"""
Tests for the set persistence policy: upsert on valid reps, delete otherwise.
"""

import asyncio
import logging

import pytest

from knockout.core.errors import ValidationError
from knockout.core.persistence import SetPersistencePolicy, resolve_weight
from knockout.io.store import MemoryStore


async def _rows(store, session_id="s1"):
    return await store.select("session_sets", {"session_id": session_id}, order_by="set_number")


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def policy(store):
    return SetPersistencePolicy(store)


class TestValidSaves:
    @pytest.mark.asyncio
    async def test_upsert_writes_row(self, store, policy):
        outcome = await policy.save("s1", 1, 10, 20.0)

        assert outcome == "upserted"
        rows = await _rows(store)
        assert len(rows) == 1
        assert rows[0]["set_number"] == 1
        assert rows[0]["reps"] == 10
        assert rows[0]["weight"] == 20.0

    @pytest.mark.asyncio
    async def test_second_save_overwrites(self, store, policy):
        await policy.save("s1", 1, 10, 20.0)
        await policy.save("s1", 1, 12, 22.5)

        rows = await _rows(store)
        assert len(rows) == 1
        assert (rows[0]["reps"], rows[0]["weight"]) == (12, 22.5)

    @pytest.mark.asyncio
    async def test_body_weight_stores_null(self, store, policy):
        await policy.save("s1", 1, 15, "40", body_weight=True)
        assert (await _rows(store))[0]["weight"] is None

    @pytest.mark.asyncio
    async def test_missing_weight_defaults_to_zero(self, store, policy):
        await policy.save("s1", 1, 15, None)
        assert (await _rows(store))[0]["weight"] == 0.0

    @pytest.mark.asyncio
    async def test_empty_weight_defaults_to_zero(self, store, policy):
        await policy.save("s1", 1, 8, "")
        assert (await _rows(store))[0]["weight"] == 0.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reps, expected", [("12", 12), (8.0, 8), (" 5 ", 5)])
    async def test_reps_are_normalised(self, store, policy, reps, expected):
        await policy.save("s1", 1, reps, None)
        assert (await _rows(store))[0]["reps"] == expected

    @pytest.mark.asyncio
    async def test_numeric_string_weight(self, store, policy):
        await policy.save("s1", 2, 6, "17.5")
        assert (await _rows(store))[0]["weight"] == 17.5


class TestInvalidReps:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("reps", [0, -3, None, "", "  ", "abc", 2.5, True])
    async def test_invalid_reps_never_leave_a_row(self, store, policy, reps):
        await policy.save("s1", 1, 10, 20.0)

        outcome = await policy.save("s1", 1, reps, 20.0)

        assert outcome == "deleted"
        assert await _rows(store) == []

    @pytest.mark.asyncio
    async def test_invalid_reps_without_row_is_quiet(self, store, policy):
        assert await policy.save("s1", 3, 0) == "deleted"
        assert await _rows(store) == []

    @pytest.mark.asyncio
    async def test_only_that_slot_is_cleared(self, store, policy):
        await policy.save("s1", 1, 10)
        await policy.save("s1", 2, 10)
        await policy.save("s1", 1, "")

        assert [r["set_number"] for r in await _rows(store)] == [2]


class TestWeightErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("weight", [-1, "-2.5", "heavy", float("nan")])
    async def test_bad_weight_raises_and_writes_nothing(self, store, policy, weight):
        with pytest.raises(ValidationError):
            await policy.save("s1", 1, 10, weight)
        assert await _rows(store) == []

    @pytest.mark.asyncio
    async def test_reject_policy_refuses_empty_weight(self, store):
        policy = SetPersistencePolicy(store, empty_weight_policy="reject")
        with pytest.raises(ValidationError):
            await policy.save("s1", 1, 10, "")
        assert await _rows(store) == []

    @pytest.mark.asyncio
    async def test_reject_policy_still_allows_body_weight(self, store):
        policy = SetPersistencePolicy(store, empty_weight_policy="reject")
        await policy.save("s1", 1, 10, None, body_weight=True)
        assert (await _rows(store))[0]["weight"] is None

    @pytest.mark.asyncio
    async def test_reject_policy_refuses_missing_weight(self, store):
        policy = SetPersistencePolicy(store, empty_weight_policy="reject")
        with pytest.raises(ValidationError):
            await policy.save("s1", 1, 10, None)
        assert await _rows(store) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("set_number", [0, -1, "2", 1.0])
    async def test_bad_set_number(self, policy, set_number):
        with pytest.raises(ValidationError):
            await policy.save("s1", set_number, 10)

    def test_resolve_weight(self):
        assert resolve_weight(None, "zero") == 0.0
        assert resolve_weight(None, "zero", body_weight=True) is None
        assert resolve_weight("12.5", "reject", body_weight=True) is None
        assert resolve_weight("", "zero") == 0.0
        assert resolve_weight(5, "reject") == 5.0


class TestOrdering:
    @pytest.mark.asyncio
    async def test_rapid_saves_last_write_wins(self, store, policy):
        await asyncio.gather(
            policy.save("s1", 1, 5),
            policy.save("s1", 1, 6),
            policy.save("s1", 1, 7),
        )
        rows = await _rows(store)
        assert len(rows) == 1
        assert rows[0]["reps"] == 7

    @pytest.mark.asyncio
    async def test_save_then_clear_in_flight(self, store, policy):
        await asyncio.gather(policy.save("s1", 1, 9), policy.save("s1", 1, 0))
        assert await _rows(store) == []

    @pytest.mark.asyncio
    async def test_different_keys_are_independent(self, store, policy):
        await asyncio.gather(policy.save("s1", 1, 5), policy.save("s1", 2, 6))
        assert [r["reps"] for r in await _rows(store)] == [5, 6]


class TestBackgroundSaves:
    @pytest.mark.asyncio
    async def test_background_save_completes(self, store, policy):
        task = policy.save_in_background("s1", 1, 11, None)
        assert await task == "upserted"
        assert (await _rows(store))[0]["reps"] == 11

    @pytest.mark.asyncio
    async def test_background_failure_is_logged_not_raised(self, store, caplog):
        policy = SetPersistencePolicy(store, empty_weight_policy="reject")
        with caplog.at_level(logging.WARNING, logger="knockout.core.persistence"):
            result = await policy.save_in_background("s1", 1, 10, "")

        assert result is None
        assert await _rows(store) == []
        assert any("Background save" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_drain_waits_for_pending(self, store, policy):
        policy.save_in_background("s1", 1, 4)
        policy.save_in_background("s1", 2, 5)
        await policy.drain()
        assert [r["reps"] for r in await _rows(store)] == [4, 5]
