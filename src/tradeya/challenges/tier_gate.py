"""Tier gate: may this user join a challenge of this type?

Checked before the join transaction, not inside it. Tier unlocks are rare, so
a join denied while an unlock is being written concurrently is accepted; the
caller re-checks and retries.
"""

from __future__ import annotations

import logging
from typing import Protocol

from tradeya.challenges.constants import ChallengeType, Tier
from tradeya.errors import TierLocked

logger = logging.getLogger(__name__)

REQUIRED_TIER: dict[str, Tier] = {
    ChallengeType.TRADE.value: Tier.TRADE,
    ChallengeType.COLLABORATION.value: Tier.COLLABORATION,
}

LOCKED_MESSAGES: dict[Tier, str] = {
    Tier.TRADE: "Tier locked: complete 3 Solo challenges to unlock Trade challenges.",
    Tier.COLLABORATION: "Tier locked: complete 5 Trade challenges to unlock Collaboration challenges.",
}


class UnlockedTiersSource(Protocol):
    async def get_unlocked_tiers(self, user_id: str) -> set[str]: ...


def required_tier(challenge_type: str) -> Tier | None:
    """The tier a challenge type requires, or None when it is ungated."""
    return REQUIRED_TIER.get(challenge_type)


class TierGate:
    """Evaluates tier requirements against a user's unlocked tiers."""

    def __init__(self, progression: UnlockedTiersSource, enabled: bool) -> None:
        self.progression = progression
        self.enabled = enabled

    async def is_allowed(self, user_id: str, challenge_type: str) -> bool:
        tier = required_tier(challenge_type)
        if tier is None or not self.enabled:
            return True
        unlocked = await self.progression.get_unlocked_tiers(user_id)
        return tier.value in unlocked

    async def check(self, user_id: str, challenge_type: str) -> None:
        """Raise TierLocked when the user may not join a challenge of this type."""
        if not await self.is_allowed(user_id, challenge_type):
            tier = REQUIRED_TIER[challenge_type]
            logger.info("Tier gate denied %s for user %s", tier.value, user_id)
            raise TierLocked(LOCKED_MESSAGES[tier])
