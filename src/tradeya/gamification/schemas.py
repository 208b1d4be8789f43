"""Pydantic models for progression, endorsement and level endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# --- Progression ---


class EarnedBadgeResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    earned_at: datetime


class SkillLevel(BaseModel):
    level: int
    experience: int


class ProgressionResponse(BaseModel):
    user_id: str
    experience: int
    level: int
    level_title: str
    xp_into_level: int
    xp_for_level: int
    next_level: int
    next_title: str
    skill_levels: dict[str, SkillLevel] = {}
    unlocked_tiers: list[str]
    badges: list[EarnedBadgeResponse] = []


class XPHistoryEntry(BaseModel):
    amount: int
    source: str
    source_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]


# --- Endorsements ---


class EndorsementRequest(BaseModel):
    skill: str = Field(min_length=1, max_length=128, pattern=r"\S")


class EndorsementResult(BaseModel):
    added: bool


class EndorsementsResponse(BaseModel):
    user_id: str
    endorsements: dict[str, list[str]]


# --- Levels ---


class LevelEntry(BaseModel):
    level: int
    title: str
    xp_required: int
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]
