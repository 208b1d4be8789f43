"""Per-user challenge statistics and completion streaks."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeya.challenges.constants import UserChallengeStatus
from tradeya.config import get_settings
from tradeya.datetime_utils import ensure_utc, utcnow
from tradeya.db.models import UserChallenge, XPLedger


def local_day(dt: datetime, tz: ZoneInfo) -> date:
    return ensure_utc(dt).astimezone(tz).date()


def completion_streak(days: Iterable[date], today: date) -> int:
    """Count consecutive completion days ending today or yesterday.

    Days are walked newest first; each must be at most one day before the
    previous counted day (the first is compared against ``today``).
    """
    streak = 0
    cursor = today
    for day in sorted(set(days), reverse=True):
        if day > cursor:
            continue
        if (cursor - day) > timedelta(days=1):
            break
        streak += 1
        cursor = day
    return streak


def fold_challenge_stats(
    records: Iterable[UserChallenge],
    today: date,
    tz: ZoneInfo,
) -> dict:
    completed = active = abandoned = 0
    durations: list[int] = []
    completion_days: set[date] = set()

    for record in records:
        if record.status == UserChallengeStatus.COMPLETED.value:
            completed += 1
            if record.completion_time_minutes is not None:
                durations.append(record.completion_time_minutes)
            completion_days.add(local_day(record.last_activity_at, tz))
        elif record.status == UserChallengeStatus.ACTIVE.value:
            active += 1
        elif record.status == UserChallengeStatus.ABANDONED.value:
            abandoned += 1

    attempted = completed + active
    return {
        "total_completed": completed,
        "total_active": active,
        "total_abandoned": abandoned,
        "streak_count": completion_streak(completion_days, today),
        "average_completion_minutes": round(sum(durations) / len(durations), 2) if durations else 0.0,
        "completion_rate": round(completed / attempted * 100, 2) if attempted else 0.0,
    }


async def get_challenge_stats(
    db: AsyncSession,
    user_id: str,
    now: datetime | None = None,
    tz: str | None = None,
) -> dict:
    """Aggregate a user's challenge history. Users without records get zeros."""
    zone = ZoneInfo(tz or get_settings().streak_timezone)
    today = ensure_utc(now or utcnow()).astimezone(zone).date()

    result = await db.execute(select(UserChallenge).where(UserChallenge.user_id == user_id))
    stats = fold_challenge_stats(result.scalars().all(), today, zone)
    stats["total_xp_earned"] = await db.scalar(
        select(func.coalesce(func.sum(XPLedger.amount), 0)).where(
            XPLedger.user_id == user_id,
            XPLedger.source == "challenge_completion",
        )
    )
    return stats
