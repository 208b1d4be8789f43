"""Badge seed data for challenge rewards."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from tradeya.db.models import BadgeDefinition

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    # Challenge milestones
    {
        "slug": "first_challenge",
        "name": "First Steps",
        "description": "Complete your first challenge",
        "icon": "\U0001F331",
        "category": "challenge",
        "rarity": "common",
        "sort_order": 1,
    },
    {
        "slug": "solo_specialist",
        "name": "Solo Specialist",
        "description": "Complete a solo skill challenge",
        "icon": "\U0001F3AF",
        "category": "challenge",
        "rarity": "common",
        "sort_order": 2,
    },
    {
        "slug": "weekly_warrior",
        "name": "Weekly Warrior",
        "description": "Finish a weekly challenge before it closes",
        "icon": "\U0001F4C5",
        "category": "challenge",
        "rarity": "uncommon",
        "sort_order": 3,
    },
    # Trading
    {
        "slug": "first_trade",
        "name": "First Trade",
        "description": "Complete your first trade on TradeYa",
        "icon": "\U0001F91D",
        "category": "trading",
        "rarity": "common",
        "sort_order": 10,
    },
    {
        "slug": "trade_veteran",
        "name": "Trade Veteran",
        "description": "Complete 10 successful trades",
        "icon": "\U0001F4C8",
        "category": "trading",
        "rarity": "uncommon",
        "sort_order": 11,
    },
    {
        "slug": "trade_master",
        "name": "Trade Master",
        "description": "Complete 50 successful trades",
        "icon": "\U0001F3C6",
        "category": "trading",
        "rarity": "rare",
        "sort_order": 12,
    },
    # Collaboration
    {
        "slug": "first_collaboration",
        "name": "Team Player",
        "description": "Complete your first collaboration role",
        "icon": "\U0001F465",
        "category": "collaboration",
        "rarity": "common",
        "sort_order": 20,
    },
    {
        "slug": "collaboration_specialist",
        "name": "Collaboration Specialist",
        "description": "Complete 5 collaboration roles",
        "icon": "\U0001F3AF",
        "category": "collaboration",
        "rarity": "uncommon",
        "sort_order": 21,
    },
    {
        "slug": "team_leader",
        "name": "Team Leader",
        "description": "Complete 20 collaboration roles",
        "icon": "\U0001F451",
        "category": "collaboration",
        "rarity": "rare",
        "sort_order": 22,
    },
    # Milestones
    {
        "slug": "xp_milestone_1000",
        "name": "Rising Star",
        "description": "Earn 1,000 total XP",
        "icon": "⭐",
        "category": "milestone",
        "rarity": "uncommon",
        "sort_order": 30,
    },
    {
        "slug": "xp_milestone_5000",
        "name": "Platform Expert",
        "description": "Earn 5,000 total XP",
        "icon": "\U0001F31F",
        "category": "milestone",
        "rarity": "rare",
        "sort_order": 31,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Upsert all badge definitions. Returns number of badges seeded."""
    seeded = 0
    for badge_data in BADGE_SEED_DATA:
        badge = await db.get(BadgeDefinition, badge_data["slug"])
        if badge is None:
            db.add(BadgeDefinition(**badge_data, is_active=True))
        else:
            for field, value in badge_data.items():
                setattr(badge, field, value)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d badge definitions", seeded)
    return seeded
