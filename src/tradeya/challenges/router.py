"""Challenge catalog and participation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tradeya.challenges.catalog import get_challenge, list_active_challenges
from tradeya.challenges.constants import ChallengeType, UserChallengeStatus
from tradeya.challenges.lifecycle import (
    ChallengeLifecycleManager,
    next_milestone,
    progress_percentage,
)
from tradeya.challenges.schemas import (
    ChallengeListResponse,
    ChallengeResponse,
    ChallengeStatsResponse,
    ProgressRequest,
    ProgressResponse,
    UserChallengeListResponse,
    UserChallengeResponse,
)
from tradeya.challenges.stats import get_challenge_stats
from tradeya.db.models import UserChallenge
from tradeya.dependencies import get_current_user_id, get_db, get_lifecycle_manager
from tradeya.errors import NotFound

router = APIRouter(prefix="/api/v1", tags=["Challenges"])


async def _owned_user_challenge(
    manager: ChallengeLifecycleManager,
    user_challenge_id: str,
    user_id: str,
) -> UserChallenge:
    user_challenge = await manager.get_user_challenge(user_challenge_id)
    if user_challenge.user_id != user_id:
        raise NotFound("User challenge not found")
    return user_challenge


# ── Catalog ──


@router.get("/challenges", response_model=ChallengeListResponse)
async def list_challenges(
    type: ChallengeType | None = Query(None),  # noqa: A002
    category: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List active challenges."""
    challenges = await list_active_challenges(
        db,
        challenge_type=type.value if type else None,
        category=category,
        limit=limit,
    )
    return ChallengeListResponse(
        challenges=[ChallengeResponse.model_validate(c) for c in challenges]
    )


@router.get("/challenges/{challenge_id}", response_model=ChallengeResponse)
async def get_challenge_detail(challenge_id: str, db: AsyncSession = Depends(get_db)):
    challenge = await get_challenge(db, challenge_id)
    if challenge is None:
        raise NotFound("Challenge not found")
    return ChallengeResponse.model_validate(challenge)


# ── Participation ──


@router.post("/challenges/{challenge_id}/join", response_model=UserChallengeResponse, status_code=201)
async def join_challenge(
    challenge_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: ChallengeLifecycleManager = Depends(get_lifecycle_manager),
):
    user_challenge = await manager.start_challenge(user_id, challenge_id)
    return UserChallengeResponse.model_validate(user_challenge)


@router.post("/challenges/{challenge_id}/progress", response_model=ProgressResponse)
async def update_progress(
    challenge_id: str,
    body: ProgressRequest,
    user_id: str = Depends(get_current_user_id),
    manager: ChallengeLifecycleManager = Depends(get_lifecycle_manager),
):
    user_challenge = await manager.update_challenge_progress(user_id, challenge_id, body.delta)
    percentage = progress_percentage(user_challenge)
    return ProgressResponse(
        user_challenge=UserChallengeResponse.model_validate(user_challenge),
        progress_percentage=percentage,
        next_milestone=next_milestone(percentage),
    )


@router.post("/user-challenges/{user_challenge_id}/complete", response_model=UserChallengeResponse)
async def complete_challenge(
    user_challenge_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: ChallengeLifecycleManager = Depends(get_lifecycle_manager),
):
    await _owned_user_challenge(manager, user_challenge_id, user_id)
    user_challenge = await manager.complete_challenge(user_challenge_id)
    return UserChallengeResponse.model_validate(user_challenge)


@router.post("/user-challenges/{user_challenge_id}/abandon", response_model=UserChallengeResponse)
async def abandon_challenge(
    user_challenge_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: ChallengeLifecycleManager = Depends(get_lifecycle_manager),
):
    await _owned_user_challenge(manager, user_challenge_id, user_id)
    user_challenge = await manager.abandon_challenge(user_challenge_id)
    return UserChallengeResponse.model_validate(user_challenge)


@router.get("/users/me/challenges", response_model=UserChallengeListResponse)
async def list_my_challenges(
    status: list[UserChallengeStatus] | None = Query(None),
    user_id: str = Depends(get_current_user_id),
    manager: ChallengeLifecycleManager = Depends(get_lifecycle_manager),
):
    """The caller's challenge records, most recently active first."""
    records = await manager.list_user_challenges(
        user_id, [s.value for s in status] if status else None,
    )
    return UserChallengeListResponse(
        user_challenges=[UserChallengeResponse.model_validate(r) for r in records]
    )


@router.get("/users/{user_id}/challenge-stats", response_model=ChallengeStatsResponse)
async def challenge_stats(user_id: str, db: AsyncSession = Depends(get_db)):
    return ChallengeStatsResponse(**await get_challenge_stats(db, user_id))
