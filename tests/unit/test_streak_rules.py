"""Streak transition rule for a day of activity."""

from datetime import date

from fitjourney.gamification.streak_service import next_streak_value

TODAY = date(2026, 3, 10)


class TestNextStreakValue:
    def test_first_activity_starts_at_one(self):
        assert next_streak_value(0, None, TODAY) == 1

    def test_consecutive_day_extends(self):
        assert next_streak_value(4, date(2026, 3, 9), TODAY) == 5

    def test_same_day_is_noop(self):
        assert next_streak_value(4, TODAY, TODAY) is None

    def test_gap_restarts(self):
        assert next_streak_value(12, date(2026, 3, 8), TODAY) == 1

    def test_month_boundary(self):
        assert next_streak_value(3, date(2026, 2, 28), date(2026, 3, 1)) == 4

    def test_year_boundary(self):
        assert next_streak_value(30, date(2026, 12, 31), date(2027, 1, 1)) == 31

    def test_clock_moved_back_is_noop(self):
        """An activity dated before the last active day never rewinds the streak."""
        assert next_streak_value(5, date(2026, 3, 11), TODAY) is None
