"""Badge award service with duplicate prevention."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeya.db.models import BadgeDefinition, UserBadge

logger = logging.getLogger(__name__)


async def get_badge_by_slug(db: AsyncSession, slug: str) -> BadgeDefinition | None:
    """Fetch a badge definition by slug."""
    return await db.get(BadgeDefinition, slug)


async def get_user_badge_slugs(db: AsyncSession, user_id: str) -> set[str]:
    result = await db.execute(select(UserBadge.badge_slug).where(UserBadge.user_id == user_id))
    return set(result.scalars().all())


async def get_user_badges(db: AsyncSession, user_id: str) -> list[UserBadge]:
    """Earned badges with their definitions, oldest first."""
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at.asc(), UserBadge.id.asc())
    )
    return list(result.scalars().unique().all())


async def award_badges(
    db: AsyncSession,
    user_id: str,
    badge_slugs: list[str],
    source: str,
) -> list[BadgeDefinition]:
    """Award every badge in ``badge_slugs`` the user does not hold yet.

    Runs inside the caller's transaction. Unknown slugs are logged and
    skipped; a concurrent duplicate insert fails the UNIQUE constraint and the
    caller's transaction is retried.
    """
    owned = await get_user_badge_slugs(db, user_id)
    now = datetime.now(timezone.utc)
    awarded: list[BadgeDefinition] = []

    for slug in dict.fromkeys(badge_slugs):
        if slug in owned:
            continue
        badge = await get_badge_by_slug(db, slug)
        if badge is None:
            logger.warning("Badge not found: %s", slug)
            continue
        db.add(UserBadge(user_id=user_id, badge_slug=slug, earned_at=now, source=source))
        owned.add(slug)
        awarded.append(badge)

    if awarded:
        await db.flush()
    return awarded
