"""ORM models for the challenge lifecycle and reputation progression tables.

Rows that take part in lifecycle transactions carry a ``version_id`` column
configured as the mapper version counter: an UPDATE whose row changed since it
was read matches zero rows and raises ``StaleDataError``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradeya.db.base import Base, JSONType
from tradeya.gamification.level_thresholds import level_for


# ---------------------------------------------------------------------------
# Challenge catalog
# ---------------------------------------------------------------------------


class Challenge(Base):
    """Catalog challenge. The engine only touches the participant/completion counters."""

    __tablename__ = "challenges"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="beginner")
    requirements: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    rewards: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    participant_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_participants: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    created_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}  # noqa: RUF012


class UserChallenge(Base):
    """One user's participation in one challenge. Never deleted."""

    __tablename__ = "user_challenges"

    # composite_id(user_id, challenge_id): one row per pair, enforced by the primary key
    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    challenge_id: Mapped[str] = mapped_column(String(64), ForeignKey("challenges.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_activity_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completion_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    abandoned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rewards_granted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}  # noqa: RUF012

    @staticmethod
    def composite_id(user_id: str, challenge_id: str) -> str:
        """Deterministic id for a (user, challenge) pair.

        The user id is length-prefixed so ids containing "_" cannot collide:
        ("alice_x", "c1") -> "7:alice_x_c1", ("alice", "x_c1") -> "5:alice_x_c1".
        """
        return f"{len(user_id)}:{user_id}_{challenge_id}"


# ---------------------------------------------------------------------------
# Reputation progression
# ---------------------------------------------------------------------------


class UserProgression(Base):
    """Experience, per-skill experience and unlocked tiers for a user."""

    __tablename__ = "user_progression"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    experience: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    skill_experience: Mapped[dict[str, int]] = mapped_column(JSONType, nullable=False, default=dict)
    unlocked_tiers: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}  # noqa: RUF012

    @property
    def level(self) -> int:
        """Always recomputed from experience."""
        return level_for(self.experience)

    @property
    def skill_levels(self) -> dict[str, dict[str, int]]:
        return {
            skill: {"level": level_for(xp), "experience": xp}
            for skill, xp in sorted((self.skill_experience or {}).items())
        }


class SkillEndorsement(Base):
    """One endorser vouching for one skill of a user. UNIQUE gives set semantics."""

    __tablename__ = "skill_endorsements"
    __table_args__ = (
        UniqueConstraint("user_id", "skill", "endorser_id", name="skill_endorsements_user_skill_endorser_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    skill: Mapped[str] = mapped_column(String(128), nullable=False)
    endorser_id: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class BadgeDefinition(Base):
    """Badge catalog used to materialise challenge reward badges."""

    __tablename__ = "badge_definitions"

    slug: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserBadge(Base):
    """Badges earned by users. UNIQUE(user_id, badge_slug)."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_slug", name="user_badges_user_id_badge_slug_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    badge_slug: Mapped[str] = mapped_column(String(64), ForeignKey("badge_definitions.slug"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source: Mapped[str | None] = mapped_column(String(256), nullable=True)

    badge: Mapped[BadgeDefinition] = relationship("BadgeDefinition", lazy="joined")


class XPLedger(Base):
    """Immutable XP transaction log with idempotency key."""

    __tablename__ = "xp_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(256), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
