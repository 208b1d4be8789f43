"""Integration: per-user challenge statistics from stored records."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tradeya.challenges.stats import get_challenge_stats
from tradeya.gamification.endorsements import EndorsementLedger
from tradeya.gamification.progression import ProgressionStore

NOW = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)


class TestChallengeStats:
    @pytest.mark.asyncio
    async def test_mixed_history(self, manager, make_challenge, db_session):
        ids = [await make_challenge(title=f"C{i}") for i in range(4)]
        yesterday = NOW - timedelta(days=1)

        first = await manager.start_challenge("alice", ids[0], now=yesterday - timedelta(minutes=20))
        await manager.complete_challenge(first.id, now=yesterday)
        second = await manager.start_challenge("alice", ids[1], now=NOW - timedelta(minutes=40))
        await manager.complete_challenge(second.id, now=NOW)
        await manager.start_challenge("alice", ids[2], now=NOW)
        abandoned = await manager.start_challenge("alice", ids[3], now=NOW)
        await manager.abandon_challenge(abandoned.id, now=NOW)

        stats = await get_challenge_stats(db_session, "alice", now=NOW)

        assert stats["total_completed"] == 2
        assert stats["total_active"] == 1
        assert stats["total_abandoned"] == 1
        assert stats["streak_count"] == 2
        assert stats["average_completion_minutes"] == 30.0
        assert stats["completion_rate"] == 66.67
        assert stats["total_xp_earned"] == 200

    @pytest.mark.asyncio
    async def test_streak_lapses_after_a_missed_day(self, manager, make_challenge, db_session):
        challenge_id = await make_challenge()
        uc = await manager.start_challenge("alice", challenge_id, now=NOW - timedelta(days=3))
        await manager.complete_challenge(uc.id, now=NOW - timedelta(days=2))

        stats = await get_challenge_stats(db_session, "alice", now=NOW)
        assert stats["total_completed"] == 1
        assert stats["streak_count"] == 0

    @pytest.mark.asyncio
    async def test_xp_earned_counts_only_challenge_rewards(self, manager, make_challenge, session_factory, db_session):
        challenge_id = await make_challenge(rewards={"xp": 250})
        uc = await manager.start_challenge("alice", challenge_id, now=NOW)
        await manager.complete_challenge(uc.id, now=NOW)
        await EndorsementLedger(session_factory).add_endorsement("alice", "bob", "react")
        other = await manager.start_challenge("bob", challenge_id, now=NOW)
        await manager.complete_challenge(other.id, now=NOW)

        stats = await get_challenge_stats(db_session, "alice", now=NOW)
        assert stats["total_xp_earned"] == 250

    @pytest.mark.asyncio
    async def test_unknown_user_is_zero(self, db_session):
        stats = await get_challenge_stats(db_session, "ghost", now=NOW)
        assert stats["total_completed"] == 0
        assert stats["completion_rate"] == 0.0
        assert stats["total_xp_earned"] == 0

    @pytest.mark.asyncio
    async def test_progression_for_new_user(self, session_factory):
        store = ProgressionStore(session_factory)
        progression = await store.get_progression("ghost")
        assert progression.experience == 0
        assert progression.level == 1
        assert await store.get_unlocked_tiers("ghost") == {"SOLO"}
