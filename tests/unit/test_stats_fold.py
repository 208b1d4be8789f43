"""Challenge statistics and completion streak boundaries."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from tradeya.challenges.lifecycle import clamp_progress, completion_minutes, next_milestone
from tradeya.challenges.stats import completion_streak, fold_challenge_stats
from tradeya.db.models import UserChallenge

UTC = ZoneInfo("UTC")
TODAY = date(2026, 3, 10)


def _record(status: str, last_activity: datetime, minutes: int | None = None) -> UserChallenge:
    return UserChallenge(
        id=f"u1_{status}_{last_activity.isoformat()}",
        challenge_id="c",
        user_id="u1",
        status=status,
        progress=0,
        max_progress=1,
        started_at=last_activity,
        last_activity_at=last_activity,
        completion_time_minutes=minutes,
        rewards_granted=False,
    )


class TestCompletionStreak:
    def test_no_days(self):
        assert completion_streak([], TODAY) == 0

    def test_today_only(self):
        assert completion_streak([TODAY], TODAY) == 1

    def test_yesterday_counts_without_today(self):
        assert completion_streak([TODAY - timedelta(days=1)], TODAY) == 1

    def test_two_days_ago_breaks(self):
        assert completion_streak([TODAY - timedelta(days=2)], TODAY) == 0

    def test_consecutive_run(self):
        days = [TODAY - timedelta(days=i) for i in range(5)]
        assert completion_streak(days, TODAY) == 5

    def test_gap_stops_the_run(self):
        days = [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=3)]
        assert completion_streak(days, TODAY) == 2

    def test_duplicate_days_count_once(self):
        assert completion_streak([TODAY, TODAY, TODAY - timedelta(days=1)], TODAY) == 2


class TestFoldChallengeStats:
    def test_empty_history_is_all_zero(self):
        stats = fold_challenge_stats([], TODAY, UTC)
        assert stats == {
            "total_completed": 0,
            "total_active": 0,
            "total_abandoned": 0,
            "streak_count": 0,
            "average_completion_minutes": 0.0,
            "completion_rate": 0.0,
        }

    def test_counts_and_rate(self):
        now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
        records = [
            _record("completed", now, minutes=30),
            _record("completed", now - timedelta(days=1), minutes=60),
            _record("active", now),
            _record("abandoned", now),
        ]
        stats = fold_challenge_stats(records, TODAY, UTC)
        assert stats["total_completed"] == 2
        assert stats["total_active"] == 1
        assert stats["total_abandoned"] == 1
        assert stats["streak_count"] == 2
        assert stats["average_completion_minutes"] == 45.0
        assert stats["completion_rate"] == 66.67

    def test_naive_datetimes_read_as_utc(self):
        naive = datetime(2026, 3, 9, 23, 30)
        stats = fold_challenge_stats([_record("completed", naive, minutes=5)], TODAY, UTC)
        assert stats["streak_count"] == 1

    def test_timezone_shifts_the_day(self):
        # 23:30 UTC on the 8th is already the 9th in Tokyo
        late = datetime(2026, 3, 8, 23, 30, tzinfo=timezone.utc)
        records = [_record("completed", late, minutes=5)]
        assert fold_challenge_stats(records, TODAY, UTC)["streak_count"] == 0
        assert fold_challenge_stats(records, TODAY, ZoneInfo("Asia/Tokyo"))["streak_count"] == 1


class TestLifecycleHelpers:
    def test_clamp_progress_bounds(self):
        assert clamp_progress(90, 50, 100) == 100
        assert clamp_progress(5, -10, 100) == 0
        assert clamp_progress(5, 3, 100) == 8

    def test_completion_minutes_floors(self):
        start = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert completion_minutes(start, start + timedelta(minutes=90, seconds=59)) == 90
        assert completion_minutes(start, start - timedelta(minutes=1)) == 0

    def test_next_milestone(self):
        assert next_milestone(0) == "25% completion"
        assert next_milestone(25) == "50% completion"
        assert next_milestone(60) == "75% completion"
        assert next_milestone(80) == "Challenge completion"
        assert next_milestone(100) == "Ready to complete"
