"""Challenge catalog accessor.

The catalog is owned by admin tooling; the lifecycle engine reads challenges
through these helpers and only ever writes the participant/completion
counters.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeya.challenges.constants import ChallengeStatus
from tradeya.challenges.schemas import ChallengeCreate
from tradeya.db.models import Challenge

logger = logging.getLogger(__name__)


async def get_challenge(db: AsyncSession, challenge_id: str) -> Challenge | None:
    """Fetch a challenge by id."""
    return await db.get(Challenge, challenge_id)


async def list_active_challenges(
    db: AsyncSession,
    challenge_type: str | None = None,
    category: str | None = None,
    limit: int = 50,
) -> list[Challenge]:
    """Active challenges, newest first, optionally filtered by type and category."""
    query = select(Challenge).where(Challenge.status == ChallengeStatus.ACTIVE.value)
    if challenge_type:
        query = query.where(Challenge.type == challenge_type)
    if category:
        query = query.where(Challenge.category == category)
    query = query.order_by(Challenge.created_at.desc(), Challenge.id).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


def max_progress_for(requirements: list[dict]) -> int:
    """Sum of requirement targets, at least 1."""
    total = sum(max(int(req.get("target", 0) or 0), 0) for req in requirements or [])
    return total if total > 0 else 1


async def create_challenge(
    db: AsyncSession,
    data: ChallengeCreate,
    created_by: str | None = None,
) -> Challenge:
    """Insert a catalog challenge. Used by admin seeding."""
    now = datetime.now(timezone.utc)
    challenge = Challenge(
        id=data.id or uuid.uuid4().hex,
        title=data.title,
        description=data.description,
        type=data.type.value,
        category=data.category,
        difficulty=data.difficulty.value,
        requirements=[req.model_dump() for req in data.requirements],
        rewards=data.rewards.model_dump(),
        start_date=data.start_date,
        end_date=data.end_date,
        status=data.status.value,
        max_participants=data.max_participants,
        tags=list(data.tags),
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    db.add(challenge)
    await db.flush()
    logger.info("Created challenge %s (%s)", challenge.id, challenge.type)
    return challenge
