"""XP grant service with idempotency and level-up detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeya.db.models import XPLedger
from tradeya.gamification.level_thresholds import level_for
from tradeya.gamification.progression import get_or_create_progression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class XPGrant:
    amount: int
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


async def grant_xp(
    db: AsyncSession,
    user_id: str,
    amount: int,
    source: str,
    source_id: str,
    description: str,
    idempotency_key: str,
    skill: str | None = None,
) -> XPGrant | None:
    """Grant XP to a user inside the caller's transaction.

    Returns None if the idempotency key was already used. Otherwise:
    1. Insert into xp_ledger
    2. Add to user_progression.experience (and the skill's experience)
    3. Report the level before and after; level itself is never stored
    """
    existing = await db.execute(
        select(XPLedger.id).where(XPLedger.idempotency_key == idempotency_key)
    )
    if existing.scalar_one_or_none() is not None:
        return None

    now = datetime.now(timezone.utc)

    db.add(XPLedger(
        user_id=user_id,
        amount=amount,
        source=source,
        source_id=source_id,
        description=description,
        idempotency_key=idempotency_key,
        created_at=now,
    ))

    progression = await get_or_create_progression(db, user_id)
    old_level = level_for(progression.experience)
    progression.experience = max(progression.experience + amount, 0)
    if skill:
        # Reassign so the JSON column is flagged dirty
        skills = dict(progression.skill_experience or {})
        skills[skill] = skills.get(skill, 0) + amount
        progression.skill_experience = skills
    progression.updated_at = now

    await db.flush()

    grant = XPGrant(amount=amount, old_level=old_level, new_level=progression.level)
    if grant.leveled_up:
        logger.info("User %s leveled up %d -> %d", user_id, grant.old_level, grant.new_level)
    return grant


async def get_xp_history(db: AsyncSession, user_id: str, limit: int = 50) -> list[XPLedger]:
    """Most recent XP ledger entries for a user."""
    result = await db.execute(
        select(XPLedger)
        .where(XPLedger.user_id == user_id)
        .order_by(XPLedger.created_at.desc(), XPLedger.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
