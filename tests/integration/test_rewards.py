"""Integration: completion -> XP -> badges -> level up, issued exactly once."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from tradeya.db.models import UserBadge, UserProgression, XPLedger
from tradeya.errors import InvalidState, NotFound
from tradeya.gamification.rewards import RewardIssuer
from tradeya.notifications import BADGE_EARNED, LEVEL_UP


class TestRewardIssuer:
    """Rewards are granted once per completion."""

    @pytest.mark.asyncio
    async def test_completion_grants_xp_badges_and_level(self, manager, make_challenge, db_session, notifier):
        challenge_id = await make_challenge(
            category="design",
            rewards={"xp": 300, "badges": ["first_challenge", "first_challenge", "no_such_badge"]},
        )
        uc = await manager.start_challenge("alice", challenge_id)
        await manager.complete_challenge(uc.id)

        progression = await db_session.get(UserProgression, "alice")
        assert progression.experience == 300
        assert progression.level == 3
        assert progression.skill_experience == {"design": 300}

        badges = (await db_session.execute(
            select(UserBadge.badge_slug).where(UserBadge.user_id == "alice")
        )).scalars().all()
        assert badges == ["first_challenge"]

        events = [c.args[1] for c in notifier.notify.await_args_list]
        assert events.count(BADGE_EARNED) == 1
        level_up = [c.args[2] for c in notifier.notify.await_args_list if c.args[1] == LEVEL_UP]
        assert level_up == [{"old_level": 1, "new_level": 3}]

    @pytest.mark.asyncio
    async def test_second_issue_is_noop(self, manager, make_challenge, session_factory, db_session):
        challenge_id = await make_challenge(rewards={"xp": 100, "badges": ["first_challenge"]})
        uc = await manager.start_challenge("alice", challenge_id)
        await manager.complete_challenge(uc.id)

        again = await RewardIssuer(session_factory).issue(uc.id)
        assert again is None

        ledger = (await db_session.execute(
            select(XPLedger).where(XPLedger.user_id == "alice")
        )).scalars().all()
        assert len(ledger) == 1
        assert ledger[0].idempotency_key == f"challenge:{uc.id}"
        progression = await db_session.get(UserProgression, "alice")
        assert progression.experience == 100

    @pytest.mark.asyncio
    async def test_badge_held_from_earlier_challenge_not_duplicated(self, manager, make_challenge, db_session):
        for title in ("One", "Two"):
            challenge_id = await make_challenge(title=title, rewards={"xp": 10, "badges": ["first_challenge"]})
            uc = await manager.start_challenge("alice", challenge_id)
            await manager.complete_challenge(uc.id)

        badges = (await db_session.execute(
            select(UserBadge).where(UserBadge.user_id == "alice")
        )).scalars().unique().all()
        assert len(badges) == 1
        progression = await db_session.get(UserProgression, "alice")
        assert progression.experience == 20

    @pytest.mark.asyncio
    async def test_active_record_cannot_be_rewarded(self, manager, make_challenge, session_factory):
        challenge_id = await make_challenge()
        uc = await manager.start_challenge("alice", challenge_id)
        with pytest.raises(InvalidState):
            await RewardIssuer(session_factory).issue(uc.id)

    @pytest.mark.asyncio
    async def test_unknown_record(self, session_factory):
        with pytest.raises(NotFound):
            await RewardIssuer(session_factory).issue("nobody_nothing")

    @pytest.mark.asyncio
    async def test_retry_after_failed_rewards(self, session_factory, make_challenge, notifier, db_session):
        """A completion whose rewards failed can be rewarded later."""
        from tradeya.challenges.lifecycle import ChallengeLifecycleManager

        class BrokenIssuer:
            async def issue(self, user_challenge_id):
                raise RuntimeError("boom")

        manager = ChallengeLifecycleManager(session_factory, notifier=notifier, reward_issuer=BrokenIssuer())
        challenge_id = await make_challenge(rewards={"xp": 40})
        uc = await manager.start_challenge("alice", challenge_id)
        await manager.complete_challenge(uc.id)

        grant = await RewardIssuer(session_factory).issue(uc.id)
        assert grant is not None
        assert grant.xp == 40
        assert not grant.leveled_up
