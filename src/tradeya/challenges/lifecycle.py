"""Challenge lifecycle manager: start, progress, complete, abandon.

Every transition is one optimistic transaction (see ``tradeya.transactions``).
The bodies only read and write rows; rewards, tier refresh and notifications
run after the commit and are best-effort: their failure is logged and never
undoes the committed transition.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradeya.challenges.catalog import get_challenge, max_progress_for
from tradeya.challenges.constants import ChallengeStatus, UserChallengeStatus
from tradeya.challenges.state_machine import ABSENT, validate_transition
from tradeya.challenges.tier_gate import TierGate
from tradeya.config import Settings, get_settings
from tradeya.datetime_utils import ensure_utc, utcnow
from tradeya.db.models import Challenge, UserChallenge
from tradeya.errors import AlreadyJoined, ChallengeFull, ChallengeInactive, InvalidState, NotFound
from tradeya.gamification.progression import ProgressionStore
from tradeya.gamification.rewards import RewardIssuer
from tradeya.notifications import (
    CHALLENGE_COMPLETED,
    CHALLENGE_PROGRESS,
    CHALLENGE_STARTED,
    Notifier,
)
from tradeya.transactions import run_in_transaction

logger = logging.getLogger(__name__)


def clamp_progress(progress: int, delta: int, max_progress: int) -> int:
    return max(0, min(progress + delta, max_progress))


def progress_percentage(user_challenge: UserChallenge) -> float:
    if user_challenge.max_progress <= 0:
        return 0.0
    return round(user_challenge.progress / user_challenge.max_progress * 100, 2)


def next_milestone(percentage: float) -> str:
    if percentage < 25:
        return "25% completion"
    if percentage < 50:
        return "50% completion"
    if percentage < 75:
        return "75% completion"
    if percentage < 100:
        return "Challenge completion"
    return "Ready to complete"


def completion_minutes(started_at: datetime, now: datetime) -> int:
    """Whole minutes between start and completion, never negative."""
    elapsed = ensure_utc(now) - ensure_utc(started_at)
    return max(int(elapsed.total_seconds() // 60), 0)


def _ensure_joinable(challenge: Challenge | None) -> Challenge:
    if challenge is None:
        raise NotFound("Challenge not found")
    if challenge.status != ChallengeStatus.ACTIVE.value:
        raise ChallengeInactive()
    return challenge


class ChallengeLifecycleManager:
    """Owns every state transition of UserChallenge records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        notifier: Notifier | None = None,
        progression: ProgressionStore | None = None,
        tier_gate: TierGate | None = None,
        reward_issuer: RewardIssuer | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.session_factory = session_factory
        self.notifier = notifier
        self.progression = progression or ProgressionStore(session_factory)
        self.tier_gate = tier_gate or TierGate(self.progression, settings.enforce_tier_gating)
        self.reward_issuer = reward_issuer or RewardIssuer(session_factory, notifier)
        self.max_attempts = settings.transaction_max_attempts

    # ── Reads ──

    async def get_user_challenge(self, user_challenge_id: str) -> UserChallenge:
        async with self.session_factory() as db:
            user_challenge = await db.get(UserChallenge, user_challenge_id)
        if user_challenge is None:
            raise NotFound("User challenge not found")
        return user_challenge

    async def list_user_challenges(
        self,
        user_id: str,
        statuses: list[str] | None = None,
    ) -> list[UserChallenge]:
        query = select(UserChallenge).where(UserChallenge.user_id == user_id)
        if statuses:
            query = query.where(UserChallenge.status.in_(statuses))
        query = query.order_by(UserChallenge.last_activity_at.desc())
        async with self.session_factory() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    # ── Transitions ──

    async def start_challenge(
        self,
        user_id: str,
        challenge_id: str,
        now: datetime | None = None,
    ) -> UserChallenge:
        """Join a challenge.

        Raises NotFound, ChallengeInactive, TierLocked, AlreadyJoined or
        ChallengeFull. Any existing record for the pair, whatever its status,
        counts as already joined.
        """
        now = now or utcnow()

        # Tier gate is a pre-check outside the transaction
        async with self.session_factory() as db:
            challenge = _ensure_joinable(await get_challenge(db, challenge_id))
            challenge_type = challenge.type
        await self.tier_gate.check(user_id, challenge_type)

        async def _start(db: AsyncSession) -> tuple[UserChallenge, str]:
            challenge = _ensure_joinable(await get_challenge(db, challenge_id))

            user_challenge_id = UserChallenge.composite_id(user_id, challenge_id)
            if await db.get(UserChallenge, user_challenge_id) is not None:
                raise AlreadyJoined()

            if challenge.max_participants and challenge.participant_count >= challenge.max_participants:
                raise ChallengeFull()

            validate_transition(ABSENT, UserChallengeStatus.ACTIVE.value)
            user_challenge = UserChallenge(
                id=user_challenge_id,
                challenge_id=challenge_id,
                user_id=user_id,
                status=UserChallengeStatus.ACTIVE.value,
                progress=0,
                max_progress=max_progress_for(challenge.requirements),
                started_at=now,
                last_activity_at=now,
                rewards_granted=False,
            )
            db.add(user_challenge)

            challenge.participant_count += 1
            challenge.updated_at = now
            return user_challenge, challenge.title

        user_challenge, title = await run_in_transaction(
            self.session_factory, _start, max_attempts=self.max_attempts, name="start_challenge",
        )
        logger.info("User %s joined challenge %s", user_id, challenge_id)

        await self._notify(user_id, CHALLENGE_STARTED, {
            "challenge_id": challenge_id,
            "challenge_title": title,
            "user_challenge_id": user_challenge.id,
        })
        return user_challenge

    async def update_challenge_progress(
        self,
        user_id: str,
        challenge_id: str,
        delta: int,
        now: datetime | None = None,
    ) -> UserChallenge:
        """Add ``delta`` to progress, clamped to [0, max_progress].

        Reaching max_progress does not complete the challenge; completion is
        a separate explicit call.
        """
        now = now or utcnow()
        user_challenge_id = UserChallenge.composite_id(user_id, challenge_id)

        async def _update(db: AsyncSession) -> UserChallenge:
            user_challenge = await db.get(UserChallenge, user_challenge_id)
            if user_challenge is None:
                raise NotFound("User challenge not found")
            if user_challenge.status != UserChallengeStatus.ACTIVE.value:
                raise InvalidState("Challenge is not active")

            user_challenge.progress = clamp_progress(
                user_challenge.progress, delta, user_challenge.max_progress,
            )
            user_challenge.last_activity_at = now
            return user_challenge

        user_challenge = await run_in_transaction(
            self.session_factory, _update, max_attempts=self.max_attempts, name="update_challenge_progress",
        )

        percentage = progress_percentage(user_challenge)
        await self._notify(user_id, CHALLENGE_PROGRESS, {
            "challenge_id": challenge_id,
            "progress": user_challenge.progress,
            "max_progress": user_challenge.max_progress,
            "progress_percentage": percentage,
            "next_milestone": next_milestone(percentage),
        })
        return user_challenge

    async def complete_challenge(
        self,
        user_challenge_id: str,
        now: datetime | None = None,
    ) -> UserChallenge:
        """Mark a challenge completed and bump the catalog completion count.

        Raises NotFound, AlreadyCompleted, or InvalidState for abandoned
        records. Rewards, tier refresh and the notification follow the
        commit and cannot revert it.
        """
        now = now or utcnow()

        async def _complete(db: AsyncSession) -> tuple[UserChallenge, Challenge]:
            user_challenge = await db.get(UserChallenge, user_challenge_id)
            if user_challenge is None:
                raise NotFound("User challenge not found")
            validate_transition(user_challenge.status, UserChallengeStatus.COMPLETED.value)

            challenge = await get_challenge(db, user_challenge.challenge_id)
            if challenge is None:
                raise NotFound("Challenge not found")

            user_challenge.status = UserChallengeStatus.COMPLETED.value
            user_challenge.completion_time_minutes = completion_minutes(user_challenge.started_at, now)
            user_challenge.completed_at = now
            user_challenge.last_activity_at = now

            challenge.completion_count += 1
            challenge.updated_at = now
            return user_challenge, challenge

        user_challenge, challenge = await run_in_transaction(
            self.session_factory, _complete, max_attempts=self.max_attempts, name="complete_challenge",
        )
        logger.info(
            "User %s completed challenge %s in %s minutes",
            user_challenge.user_id, challenge.id, user_challenge.completion_time_minutes,
        )

        await self._after_completion(user_challenge, challenge)
        return await self.get_user_challenge(user_challenge_id)

    async def abandon_challenge(
        self,
        user_challenge_id: str,
        now: datetime | None = None,
    ) -> UserChallenge:
        """Abandon an active challenge. No rewards. Terminal."""
        now = now or utcnow()

        async def _abandon(db: AsyncSession) -> UserChallenge:
            user_challenge = await db.get(UserChallenge, user_challenge_id)
            if user_challenge is None:
                raise NotFound("User challenge not found")
            validate_transition(user_challenge.status, UserChallengeStatus.ABANDONED.value)

            user_challenge.status = UserChallengeStatus.ABANDONED.value
            user_challenge.abandoned_at = now
            user_challenge.last_activity_at = now
            return user_challenge

        user_challenge = await run_in_transaction(
            self.session_factory, _abandon, max_attempts=self.max_attempts, name="abandon_challenge",
        )
        logger.info("User %s abandoned challenge %s", user_challenge.user_id, user_challenge.challenge_id)
        return user_challenge

    # ── Secondary effects ──

    async def _after_completion(self, user_challenge: UserChallenge, challenge: Challenge) -> None:
        try:
            await self.reward_issuer.issue(user_challenge.id)
        except Exception:
            logger.warning("Reward issuance failed for %s", user_challenge.id, exc_info=True)

        try:
            await self.progression.refresh_unlocked_tiers(user_challenge.user_id)
        except Exception:
            logger.warning("Tier refresh failed for user %s", user_challenge.user_id, exc_info=True)

        await self._notify(user_challenge.user_id, CHALLENGE_COMPLETED, {
            "challenge_id": challenge.id,
            "challenge_title": challenge.title,
            "user_challenge_id": user_challenge.id,
            "completion_time_minutes": user_challenge.completion_time_minutes,
        })

    async def _notify(self, user_id: str, event: str, payload: dict) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.notify(user_id, event, payload)
        except Exception:
            logger.warning("Failed to send %s notification to %s", event, user_id, exc_info=True)
