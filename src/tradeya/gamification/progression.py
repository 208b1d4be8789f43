"""Progression accessor and three-tier unlock refresh.

Unlocked tiers are derived from the user's COMPLETED challenge history, not
from a maintained counter: the refresh re-counts completions by challenge
type every time it runs.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradeya.challenges.constants import ChallengeType, Tier, UserChallengeStatus
from tradeya.db.models import Challenge, UserChallenge, UserProgression
from tradeya.transactions import run_in_transaction

logger = logging.getLogger(__name__)

# tier -> (challenge type whose completions count, completions required)
TIER_UNLOCK_RULES: dict[Tier, tuple[ChallengeType, int]] = {
    Tier.TRADE: (ChallengeType.SOLO, 3),
    Tier.COLLABORATION: (ChallengeType.TRADE, 5),
}

TIER_ORDER = [Tier.SOLO.value, Tier.TRADE.value, Tier.COLLABORATION.value]


def _sorted_tiers(tiers: set[str]) -> list[str]:
    return sorted(tiers, key=lambda t: (TIER_ORDER.index(t) if t in TIER_ORDER else len(TIER_ORDER), t))


def new_progression(user_id: str, now: datetime | None = None) -> UserProgression:
    """Build an unsaved progression row with explicit defaults."""
    return UserProgression(
        user_id=user_id,
        experience=0,
        skill_experience={},
        unlocked_tiers=[Tier.SOLO.value],
        created_at=now,
        updated_at=now,
    )


async def get_or_create_progression(db: AsyncSession, user_id: str) -> UserProgression:
    """Get or create the progression row for a user."""
    progression = await db.get(UserProgression, user_id)
    if progression is None:
        progression = new_progression(user_id, datetime.now(timezone.utc))
        db.add(progression)
        await db.flush()
    return progression


def tiers_from_completions(completions_by_type: dict[str, int]) -> set[str]:
    """Tiers unlocked by a per-type completion count. SOLO is always open."""
    tiers = {Tier.SOLO.value}
    for tier, (challenge_type, required) in TIER_UNLOCK_RULES.items():
        if completions_by_type.get(challenge_type.value, 0) >= required:
            tiers.add(tier.value)
    return tiers


class ProgressionStore:
    """Reads and derives UserProgression state."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get_progression(self, user_id: str) -> UserProgression:
        """Stored progression, or a zeroed unsaved one for users without history."""
        async with self.session_factory() as db:
            progression = await db.get(UserProgression, user_id)
        return progression if progression is not None else new_progression(user_id)

    async def get_unlocked_tiers(self, user_id: str) -> set[str]:
        progression = await self.get_progression(user_id)
        return set(progression.unlocked_tiers or []) | {Tier.SOLO.value}

    async def refresh_unlocked_tiers(self, user_id: str) -> list[str]:
        """Recount completions by type and add any newly earned tiers."""

        async def _refresh(db: AsyncSession) -> list[str]:
            rows = await db.execute(
                select(Challenge.type, func.count(UserChallenge.id))
                .join(Challenge, Challenge.id == UserChallenge.challenge_id)
                .where(
                    UserChallenge.user_id == user_id,
                    UserChallenge.status == UserChallengeStatus.COMPLETED.value,
                )
                .group_by(Challenge.type)
            )
            earned = tiers_from_completions({row[0]: row[1] for row in rows})

            progression = await get_or_create_progression(db, user_id)
            current = set(progression.unlocked_tiers or [])
            # Unlocks are never revoked
            merged = current | earned
            if merged != current:
                progression.unlocked_tiers = _sorted_tiers(merged)
                progression.updated_at = datetime.now(timezone.utc)
                logger.info("User %s unlocked tiers %s", user_id, sorted(merged - current))
            return _sorted_tiers(merged)

        return await run_in_transaction(self.session_factory, _refresh, name="refresh_unlocked_tiers")
