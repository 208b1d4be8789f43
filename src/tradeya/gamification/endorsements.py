"""Skill endorsement ledger."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradeya.config import get_settings
from tradeya.db.models import SkillEndorsement
from tradeya.errors import SelfEndorsement
from tradeya.gamification.xp_service import grant_xp
from tradeya.notifications import ENDORSEMENT_RECEIVED, Notifier
from tradeya.transactions import run_in_transaction

logger = logging.getLogger(__name__)


class EndorsementLedger:
    """Records endorsements and grants the endorsed user a small XP award."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier | None = None,
        xp_award: int | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.notifier = notifier
        self.xp_award = get_settings().endorsement_xp if xp_award is None else xp_award

    async def add_endorsement(self, user_id: str, endorser_id: str, skill: str) -> bool:
        """Endorse ``skill`` of ``user_id``. Returns False if this endorser already did."""
        if endorser_id == user_id:
            raise SelfEndorsement()
        skill = skill.strip()

        async def _add(db: AsyncSession) -> bool:
            existing = await db.execute(
                select(SkillEndorsement.id).where(
                    SkillEndorsement.user_id == user_id,
                    SkillEndorsement.skill == skill,
                    SkillEndorsement.endorser_id == endorser_id,
                )
            )
            if existing.scalar_one_or_none() is not None:
                return False

            db.add(SkillEndorsement(
                user_id=user_id,
                skill=skill,
                endorser_id=endorser_id,
                created_at=datetime.now(timezone.utc),
            ))
            await db.flush()

            if self.xp_award > 0:
                await grant_xp(
                    db,
                    user_id=user_id,
                    amount=self.xp_award,
                    source="endorsement",
                    source_id=f"{skill}:{endorser_id}",
                    description=f"Endorsed for {skill}",
                    idempotency_key=f"endorsement:{user_id}:{skill}:{endorser_id}",
                    skill=skill,
                )
            return True

        added = await run_in_transaction(self.session_factory, _add, name="add_endorsement")
        if added:
            logger.info("User %s endorsed %s for %s", endorser_id, user_id, skill)
            if self.notifier is not None:
                try:
                    await self.notifier.notify(
                        user_id, ENDORSEMENT_RECEIVED, {"skill": skill, "endorser_id": endorser_id}
                    )
                except Exception:
                    logger.warning("Failed to announce endorsement for %s", user_id, exc_info=True)
        return added

    async def get_endorsements(self, user_id: str) -> dict[str, set[str]]:
        """Skill -> set of endorser ids."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(SkillEndorsement.skill, SkillEndorsement.endorser_id)
                .where(SkillEndorsement.user_id == user_id)
            )
            endorsements: dict[str, set[str]] = defaultdict(set)
            for skill, endorser_id in result:
                endorsements[skill].add(endorser_id)
        return dict(endorsements)
