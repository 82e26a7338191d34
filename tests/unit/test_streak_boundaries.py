"""Streak transitions and day-boundary classification."""

from datetime import date, timedelta

from phare.gamification.schemas import StreakInfo, StreakStatus
from phare.gamification.streak_service import advance_streak, classify_streak, get_streak_encouragement

TODAY = date(2026, 3, 11)
YESTERDAY = TODAY - timedelta(days=1)


class TestAdvanceStreak:
    def test_first_activity(self):
        assert advance_streak(0, 0, None, TODAY) == (1, 1, True)

    def test_consecutive_day(self):
        assert advance_streak(3, 3, YESTERDAY, TODAY) == (4, 4, True)

    def test_same_day_is_unchanged(self):
        assert advance_streak(3, 5, TODAY, TODAY) == (3, 5, False)

    def test_gap_restarts(self):
        assert advance_streak(6, 6, TODAY - timedelta(days=2), TODAY) == (1, 6, True)

    def test_longest_only_grows(self):
        current, longest, _ = advance_streak(2, 10, YESTERDAY, TODAY)
        assert (current, longest) == (3, 10)

    def test_after_nightly_reset(self):
        """A zeroed streak whose last day was yesterday resumes from zero."""
        assert advance_streak(0, 4, YESTERDAY, TODAY) == (1, 4, True)

    def test_month_boundary(self):
        assert advance_streak(2, 2, date(2026, 2, 28), date(2026, 3, 1)) == (3, 3, True)


class TestClassifyStreak:
    def test_never_active(self):
        assert classify_streak(0, None, TODAY) is StreakStatus.NONE

    def test_active_today(self):
        assert classify_streak(2, TODAY, TODAY) is StreakStatus.ACTIVE_TODAY

    def test_at_risk(self):
        assert classify_streak(2, YESTERDAY, TODAY) is StreakStatus.AT_RISK

    def test_lapsed(self):
        assert classify_streak(2, TODAY - timedelta(days=2), TODAY) is StreakStatus.BROKEN

    def test_zero_counter(self):
        assert classify_streak(0, YESTERDAY, TODAY) is StreakStatus.BROKEN

    def test_at_risk_property(self):
        info = StreakInfo(current_streak=2, longest_streak=2, last_activity_date=YESTERDAY, status=StreakStatus.AT_RISK)
        assert info.is_at_risk is True


class TestEncouragement:
    def test_at_risk_mentions_count(self):
        assert "4-day" in get_streak_encouragement(4, StreakStatus.AT_RISK)

    def test_broken(self):
        assert get_streak_encouragement(0, StreakStatus.BROKEN).startswith("Your streak has ended")

    def test_bands(self):
        assert get_streak_encouragement(0, StreakStatus.NONE) == "Start your streak today!"
        assert "Day one" in get_streak_encouragement(1, StreakStatus.ACTIVE_TODAY)
        assert "legend" in get_streak_encouragement(31, StreakStatus.ACTIVE_TODAY)
