"""Shared FastAPI dependencies."""

from fastapi import Depends, Header, HTTPException, status

from tradeya.challenges.lifecycle import ChallengeLifecycleManager
from tradeya.database import get_session as _get_session
from tradeya.database import get_session_factory
from tradeya.gamification.endorsements import EndorsementLedger
from tradeya.gamification.progression import ProgressionStore
from tradeya.notifications import Notifier, RedisNotifier
from tradeya.redis_client import get_redis

get_db = _get_session


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, asserted by the upstream gateway in ``X-User-Id``."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return user_id


def get_notifier() -> Notifier:
    return RedisNotifier(get_redis())


def get_progression_store() -> ProgressionStore:
    return ProgressionStore(get_session_factory())


def get_lifecycle_manager(
    notifier: Notifier = Depends(get_notifier),
    progression: ProgressionStore = Depends(get_progression_store),
) -> ChallengeLifecycleManager:
    return ChallengeLifecycleManager(
        get_session_factory(),
        notifier=notifier,
        progression=progression,
    )


def get_endorsement_ledger(notifier: Notifier = Depends(get_notifier)) -> EndorsementLedger:
    return EndorsementLedger(get_session_factory(), notifier=notifier)
