"""Calendar helpers for streak days and quest periods."""

from datetime import date, datetime, timezone

import pytest

from fitjourney.config import get_settings
from fitjourney.periods import (
    day_bounds,
    get_monday,
    get_week_iso,
    local_date,
    month_start,
    quest_expiry,
    quest_period_key,
    week_bounds,
)


@pytest.fixture
def berlin_tz(monkeypatch):
    monkeypatch.setattr(get_settings(), "activity_timezone", "Europe/Berlin")


class TestWeekHelpers:
    def test_iso_week_format(self):
        assert get_week_iso(date(2026, 3, 4)) == "2026-W10"

    def test_iso_week_year_boundary(self):
        """Jan 1 2027 (Friday) belongs to ISO week 53 of 2026."""
        assert get_week_iso(date(2027, 1, 1)) == "2026-W53"

    def test_monday_of_week(self):
        assert get_monday(date(2026, 3, 8)) == date(2026, 3, 2)  # Sunday
        assert get_monday(date(2026, 3, 2)) == date(2026, 3, 2)


class TestBounds:
    def test_day_bounds_utc(self):
        now = datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc)
        start, end = day_bounds(now)
        assert start == datetime(2026, 3, 4, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 5, tzinfo=timezone.utc)

    def test_week_bounds_start_monday(self):
        now = datetime(2026, 3, 8, 23, 0, tzinfo=timezone.utc)
        start, end = week_bounds(now)
        assert start == datetime(2026, 3, 2, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 9, tzinfo=timezone.utc)

    def test_month_start(self):
        assert month_start(datetime(2026, 3, 14, 8, tzinfo=timezone.utc)) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_local_date_follows_activity_timezone(self, berlin_tz):
        # 23:30 UTC on Mar 4 is already Mar 5 in Berlin
        assert local_date(datetime(2026, 3, 4, 23, 30, tzinfo=timezone.utc)) == date(2026, 3, 5)

    def test_day_bounds_in_activity_timezone(self, berlin_tz):
        start, _ = day_bounds(datetime(2026, 3, 4, 12, tzinfo=timezone.utc))
        assert start == datetime(2026, 3, 3, 23, tzinfo=timezone.utc)


class TestQuestPeriods:
    NOW = datetime(2026, 3, 4, 10, 0, tzinfo=timezone.utc)  # Wednesday

    def test_daily_key(self):
        assert quest_period_key("DAILY", self.NOW) == "2026-03-04"

    def test_weekly_key(self):
        assert quest_period_key("WEEKLY", self.NOW) == "2026-W10"

    def test_special_key(self):
        assert quest_period_key("SPECIAL", self.NOW) == "special"

    def test_daily_expires_next_midnight(self):
        assert quest_expiry("DAILY", self.NOW) == datetime(2026, 3, 5, tzinfo=timezone.utc)

    def test_weekly_expires_next_monday(self):
        assert quest_expiry("WEEKLY", self.NOW) == datetime(2026, 3, 9, tzinfo=timezone.utc)

    def test_special_never_expires(self):
        assert quest_expiry("SPECIAL", self.NOW) is None
