"""Reward issuance for completed challenges.

Rewards may be requested more than once for the same completion (client
retries, out-of-band replays after a failed secondary step). The
``rewards_granted`` flag lives on the same row as the completion and is set in
the same transaction as the XP and badge writes, so a second call is a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradeya.challenges.constants import UserChallengeStatus
from tradeya.challenges.schemas import ChallengeRewards
from tradeya.db.models import Challenge, UserChallenge
from tradeya.errors import InvalidState, NotFound
from tradeya.gamification.badge_service import award_badges
from tradeya.gamification.progression import get_or_create_progression
from tradeya.gamification.xp_service import grant_xp
from tradeya.notifications import BADGE_EARNED, LEVEL_UP, Notifier
from tradeya.transactions import run_in_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewardGrant:
    user_id: str
    user_challenge_id: str
    challenge_id: str
    xp: int
    old_level: int
    new_level: int
    badges: list[dict] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


class RewardIssuer:
    """Grants a completed challenge's XP and badges exactly once."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.notifier = notifier

    async def issue(self, user_challenge_id: str) -> RewardGrant | None:
        """Issue rewards. Returns None when they were already granted."""

        async def _issue(db: AsyncSession) -> RewardGrant | None:
            user_challenge = await db.get(UserChallenge, user_challenge_id)
            if user_challenge is None:
                raise NotFound("User challenge not found")
            if user_challenge.status != UserChallengeStatus.COMPLETED.value:
                raise InvalidState("Rewards are only issued for completed challenges")
            if user_challenge.rewards_granted:
                return None

            challenge = await db.get(Challenge, user_challenge.challenge_id)
            if challenge is None:
                raise NotFound("Challenge not found")
            rewards = ChallengeRewards.model_validate(challenge.rewards or {})

            progression = await get_or_create_progression(db, user_challenge.user_id)
            old_level = progression.level

            xp_awarded = 0
            if rewards.xp > 0:
                grant = await grant_xp(
                    db,
                    user_id=user_challenge.user_id,
                    amount=rewards.xp,
                    source="challenge_completion",
                    source_id=challenge.id,
                    description=f"Completed: {challenge.title}",
                    idempotency_key=f"challenge:{user_challenge.id}",
                    skill=challenge.category,
                )
                xp_awarded = grant.amount if grant else 0

            badges = await award_badges(
                db,
                user_challenge.user_id,
                rewards.badges,
                source=f"challenge:{user_challenge.id}",
            )

            user_challenge.rewards_granted = True

            return RewardGrant(
                user_id=user_challenge.user_id,
                user_challenge_id=user_challenge.id,
                challenge_id=challenge.id,
                xp=xp_awarded,
                old_level=old_level,
                new_level=progression.level,
                badges=[
                    {"id": b.slug, "name": b.name, "description": b.description, "icon": b.icon}
                    for b in badges
                ],
            )

        grant = await run_in_transaction(self.session_factory, _issue, name="issue_rewards")
        if grant is None:
            logger.info("Rewards already granted for %s", user_challenge_id)
            return None

        logger.info(
            "Granted %d XP and %d badges for %s",
            grant.xp, len(grant.badges), user_challenge_id,
        )
        await self._announce(grant)
        return grant

    async def _announce(self, grant: RewardGrant) -> None:
        if self.notifier is None:
            return
        try:
            for badge in grant.badges:
                await self.notifier.notify(grant.user_id, BADGE_EARNED, badge)
            if grant.leveled_up:
                await self.notifier.notify(
                    grant.user_id,
                    LEVEL_UP,
                    {"old_level": grant.old_level, "new_level": grant.new_level},
                )
        except Exception:
            logger.warning("Failed to announce rewards for %s", grant.user_challenge_id, exc_info=True)
