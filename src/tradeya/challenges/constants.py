"""Challenge enumerations shared by the catalog, lifecycle and stats code."""

from __future__ import annotations

from enum import Enum


class ChallengeType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    SKILL = "skill"
    COMMUNITY = "community"
    SPECIAL_EVENT = "special_event"
    PERSONAL = "personal"
    # Three-tier progression
    SOLO = "solo"
    TRADE = "trade"
    COLLABORATION = "collaboration"


class ChallengeStatus(str, Enum):
    DRAFT = "draft"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    CANCELLED = "cancelled"


class ChallengeDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class UserChallengeStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class Tier(str, Enum):
    SOLO = "SOLO"
    TRADE = "TRADE"
    COLLABORATION = "COLLABORATION"
