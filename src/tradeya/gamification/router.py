"""Progression, endorsement and level endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tradeya.dependencies import (
    get_current_user_id,
    get_db,
    get_endorsement_ledger,
    get_progression_store,
)
from tradeya.gamification.badge_service import get_user_badges
from tradeya.gamification.endorsements import EndorsementLedger
from tradeya.gamification.level_thresholds import LEVEL_THRESHOLDS, compute_level
from tradeya.gamification.progression import TIER_ORDER, ProgressionStore
from tradeya.gamification.schemas import (
    AllLevelsResponse,
    EarnedBadgeResponse,
    EndorsementRequest,
    EndorsementResult,
    EndorsementsResponse,
    LevelEntry,
    ProgressionResponse,
    SkillLevel,
    XPHistoryEntry,
    XPHistoryResponse,
)
from tradeya.gamification.xp_service import get_xp_history

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


# ── Public endpoints ──


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level definitions."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(
                level=t["level"],
                title=t["title"],
                xp_required=t["xp_required"],
                cumulative=t["cumulative"],
            )
            for t in LEVEL_THRESHOLDS
        ]
    )


@router.get("/users/{user_id}/progression", response_model=ProgressionResponse)
async def get_user_progression(
    user_id: str,
    store: ProgressionStore = Depends(get_progression_store),
    db: AsyncSession = Depends(get_db),
):
    """Level, skill levels, unlocked tiers and earned badges."""
    progression = await store.get_progression(user_id)
    level_info = compute_level(progression.experience)
    tiers = set(progression.unlocked_tiers or []) | {TIER_ORDER[0]}
    earned = await get_user_badges(db, user_id)

    return ProgressionResponse(
        user_id=user_id,
        experience=progression.experience,
        level=level_info["level"],
        level_title=level_info["title"],
        xp_into_level=level_info["xp_into_level"],
        xp_for_level=level_info["xp_for_level"],
        next_level=level_info["next_level"],
        next_title=level_info["next_title"],
        skill_levels={
            skill: SkillLevel(**info) for skill, info in progression.skill_levels.items()
        },
        unlocked_tiers=[t for t in TIER_ORDER if t in tiers],
        badges=[
            EarnedBadgeResponse(
                id=ub.badge.slug,
                name=ub.badge.name,
                description=ub.badge.description,
                icon=ub.badge.icon,
                earned_at=ub.earned_at,
            )
            for ub in earned
        ],
    )


@router.get("/users/{user_id}/xp-history", response_model=XPHistoryResponse)
async def get_user_xp_history(
    user_id: str,
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    entries = await get_xp_history(db, user_id, limit=limit)
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                amount=e.amount,
                source=e.source,
                source_id=e.source_id,
                description=e.description,
                created_at=e.created_at,
            )
            for e in entries
        ]
    )


@router.get("/users/{user_id}/endorsements", response_model=EndorsementsResponse)
async def list_endorsements(
    user_id: str,
    ledger: EndorsementLedger = Depends(get_endorsement_ledger),
):
    endorsements = await ledger.get_endorsements(user_id)
    return EndorsementsResponse(
        user_id=user_id,
        endorsements={skill: sorted(endorsers) for skill, endorsers in sorted(endorsements.items())},
    )


# ── Authenticated endpoints ──


@router.post("/users/{user_id}/endorsements", response_model=EndorsementResult)
async def endorse_user(
    user_id: str,
    body: EndorsementRequest,
    endorser_id: str = Depends(get_current_user_id),
    ledger: EndorsementLedger = Depends(get_endorsement_ledger),
):
    """Endorse one of ``user_id``'s skills as the calling user."""
    added = await ledger.add_endorsement(user_id, endorser_id, body.skill)
    return EndorsementResult(added=added)
