"""Pydantic request/response models for challenge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from tradeya.challenges.constants import ChallengeDifficulty, ChallengeStatus, ChallengeType


# --- Catalog ---


class ChallengeRequirement(BaseModel):
    id: str
    type: str = "submission_count"
    target: int = Field(default=1, ge=0)
    description: str = ""


class ChallengeRewards(BaseModel):
    xp: int = Field(default=0, ge=0)
    badges: list[str] = []
    unlockable_features: list[str] = []


class ChallengeCreate(BaseModel):
    id: str | None = None
    title: str
    description: str = ""
    type: ChallengeType
    category: str | None = None
    difficulty: ChallengeDifficulty = ChallengeDifficulty.BEGINNER
    requirements: list[ChallengeRequirement] = []
    rewards: ChallengeRewards = ChallengeRewards()
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: ChallengeStatus = ChallengeStatus.ACTIVE
    max_participants: int | None = Field(default=None, ge=1)
    tags: list[str] = []


class ChallengeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    type: str
    category: str | None = None
    difficulty: str
    requirements: list[ChallengeRequirement]
    rewards: ChallengeRewards
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: str
    participant_count: int
    completion_count: int
    max_participants: int | None = None
    tags: list[str] = []


class ChallengeListResponse(BaseModel):
    challenges: list[ChallengeResponse]


# --- Participation ---


class UserChallengeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    challenge_id: str
    user_id: str
    status: str
    progress: int
    max_progress: int
    started_at: datetime
    last_activity_at: datetime
    completion_time_minutes: int | None = None
    completed_at: datetime | None = None
    abandoned_at: datetime | None = None
    rewards_granted: bool


class UserChallengeListResponse(BaseModel):
    user_challenges: list[UserChallengeResponse]


class ProgressRequest(BaseModel):
    delta: int = 1


class ProgressResponse(BaseModel):
    user_challenge: UserChallengeResponse
    progress_percentage: float
    next_milestone: str


# --- Stats ---


class ChallengeStatsResponse(BaseModel):
    total_completed: int = 0
    total_active: int = 0
    total_abandoned: int = 0
    streak_count: int = 0
    average_completion_minutes: float = 0.0
    completion_rate: float = 0.0
    total_xp_earned: int = 0
