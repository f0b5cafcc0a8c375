"""
Warden - Case Ledger Tests
==========================

Numbering, validation, querying and statistics.
"""

import asyncio
import sqlite3

import pytest
import pytest_asyncio

from conftest import GUILD_ID, MOD_ID, USER_ID, FakeClock
from warden.core.errors import PersistenceError, ValidationError
from warden.core.models import ActionType, CaseDraft
from warden.services.case_ledger import CaseLedger


def _draft(action=ActionType.WARN, reason="spamming", **kwargs):
    return CaseDraft(
        community_id=kwargs.pop("community_id", GUILD_ID),
        subject_user_id=kwargs.pop("subject_user_id", USER_ID),
        actor_id=MOD_ID,
        action_type=action,
        reason=reason,
        **kwargs,
    )


@pytest.fixture
def ledger(test_db, clock):
    return CaseLedger(test_db, clock)


class TestAllocation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [1, 2, 25])
    async def test_concurrent_allocations_are_dense_and_unique(self, ledger, n):
        ids = await asyncio.gather(*(ledger.allocate_case_id(GUILD_ID) for _ in range(n)))
        assert sorted(ids) == list(range(1, n + 1))

    @pytest.mark.asyncio
    async def test_communities_number_independently(self, ledger):
        await ledger.allocate_case_id(GUILD_ID)
        await ledger.allocate_case_id(GUILD_ID)
        assert await ledger.allocate_case_id(GUILD_ID + 1) == 1


class TestRecordCase:

    @pytest.mark.asyncio
    async def test_unnumbered_by_default(self, ledger):
        case = await ledger.record_case(_draft())
        assert case.case_id is None
        assert case.reason == "spamming"

    @pytest.mark.asyncio
    async def test_numbered_cases_increase(self, ledger):
        first = await ledger.record_case(_draft(), assign_case_id=True)
        second = await ledger.record_case(_draft(ActionType.NOTE), assign_case_id=True)
        assert (first.case_id, second.case_id) == (1, 2)

    @pytest.mark.asyncio
    async def test_created_at_comes_from_clock(self, ledger, clock):
        case = await ledger.record_case(_draft())
        assert case.created_at == clock.now()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", ["", "   ", None])
    async def test_empty_reason_rejected_without_allocating(self, ledger, test_db, reason):
        with pytest.raises(ValidationError):
            await ledger.record_case(_draft(reason=reason), assign_case_id=True)
        assert test_db.get_case_counter(GUILD_ID) == 0

    @pytest.mark.asyncio
    async def test_too_much_evidence_rejected(self, ledger, test_db):
        with pytest.raises(ValidationError):
            await ledger.record_case(_draft(evidence=[f"https://e/{i}" for i in range(6)]))
        assert test_db.get_user_cases(GUILD_ID, USER_ID) == []

    @pytest.mark.asyncio
    async def test_unknown_action_rejected(self, ledger):
        with pytest.raises(ValidationError):
            await ledger.record_case(_draft(action="smite"))

    @pytest.mark.asyncio
    async def test_failed_insert_consumes_case_id(self, ledger, test_db, monkeypatch):
        await ledger.record_case(_draft(), assign_case_id=True)

        def broken_insert(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(test_db, "insert_case", broken_insert)
        with pytest.raises(PersistenceError):
            await ledger.record_case(_draft(), assign_case_id=True)
        monkeypatch.undo()

        third = await ledger.record_case(_draft(), assign_case_id=True)
        assert third.case_id == 3

    @pytest.mark.asyncio
    async def test_counter_failure_is_persistence_error(self, ledger, test_db, monkeypatch):
        def broken_counter(*args, **kwargs):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(test_db, "increment_case_counter", broken_counter)
        with pytest.raises(PersistenceError):
            await ledger.record_case(_draft(), assign_case_id=True)
        assert test_db.get_user_cases(GUILD_ID, USER_ID) == []


class TestQueries:

    @pytest_asyncio.fixture
    async def history(self, test_db):
        clock = FakeClock()
        ledger = CaseLedger(test_db, clock)
        for action in (ActionType.WARN, ActionType.MUTE, ActionType.WARN, ActionType.BAN):
            await clock.advance(10)
            await ledger.record_case(_draft(action))
        await ledger.record_case(_draft(subject_user_id=USER_ID + 1))
        return ledger

    @pytest.mark.asyncio
    async def test_newest_first(self, history):
        cases = await history.query_cases(GUILD_ID, USER_ID)
        assert [c.action_type for c in cases] == [
            ActionType.BAN, ActionType.WARN, ActionType.MUTE, ActionType.WARN,
        ]

    @pytest.mark.asyncio
    async def test_type_filter_and_limit(self, history):
        warns = await history.query_cases(GUILD_ID, USER_ID, ActionType.WARN)
        assert len(warns) == 2
        assert all(c.action_type is ActionType.WARN for c in warns)

        limited = await history.query_cases(GUILD_ID, USER_ID, "warn", limit=1)
        assert len(limited) == 1
        assert limited[0].created_at == warns[0].created_at

    @pytest.mark.asyncio
    async def test_zero_and_negative_limit(self, history):
        assert await history.query_cases(GUILD_ID, USER_ID, limit=0) == []
        with pytest.raises(ValidationError):
            await history.query_cases(GUILD_ID, USER_ID, limit=-1)

    @pytest.mark.asyncio
    async def test_stats_match_breakdown(self, history):
        stats = await history.aggregate_stats(GUILD_ID, USER_ID)
        assert stats.total_cases == 4
        assert stats.counts_by_type == {"warn": 2, "mute": 1, "ban": 1}
        assert stats.most_recent_case.action_type is ActionType.BAN

    @pytest.mark.asyncio
    async def test_stats_for_clean_user(self, history):
        stats = await history.aggregate_stats(GUILD_ID, 999)
        assert stats.total_cases == 0
        assert stats.most_recent_case is None
