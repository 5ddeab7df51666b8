"""Calendar helpers: local days, ISO weeks and quest periods.

All "today" computations use the configured ``activity_timezone`` so a user's
streak day and daily quest window roll over at the same local midnight.
Returned datetimes are always timezone-aware UTC.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from fitjourney.config import get_settings

SPECIAL_PERIOD_KEY = "special"


def get_activity_tz() -> ZoneInfo:
    """Timezone used to decide where one activity day ends."""
    return ZoneInfo(get_settings().activity_timezone)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_date(now: datetime | None = None) -> date:
    """Calendar date of ``now`` in the activity timezone."""
    if now is None:
        now = utcnow()
    return now.astimezone(get_activity_tz()).date()


def get_week_iso(d: datetime | date) -> str:
    """Get ISO week string e.g. '2026-W09'. Uses %G-W%V (ISO year + ISO week)."""
    return d.strftime("%G-W%V")


def get_monday(d: datetime | date) -> date:
    """Get the Monday of the ISO week containing d."""
    d = d.date() if isinstance(d, datetime) else d
    return d - timedelta(days=d.weekday())


def local_midnight(d: date) -> datetime:
    """Start of local day ``d``, as UTC."""
    return datetime.combine(d, time.min, tzinfo=get_activity_tz()).astimezone(timezone.utc)


def day_bounds(now: datetime | None = None) -> tuple[datetime, datetime]:
    """(start, end) of the local day containing ``now``; end is exclusive."""
    today = local_date(now)
    return local_midnight(today), local_midnight(today + timedelta(days=1))


def week_bounds(now: datetime | None = None) -> tuple[datetime, datetime]:
    """(Monday 00:00, next Monday 00:00) of the local ISO week containing ``now``."""
    monday = get_monday(local_date(now))
    return local_midnight(monday), local_midnight(monday + timedelta(days=7))


def month_start(now: datetime | None = None) -> datetime:
    """First instant of the local calendar month containing ``now``."""
    return local_midnight(local_date(now).replace(day=1))


def quest_period_key(quest_type: str, now: datetime | None = None) -> str:
    """Period identifier that makes a quest assignment unique.

    DAILY -> '2026-03-14', WEEKLY -> '2026-W11', SPECIAL -> 'special'.
    """
    if quest_type == "DAILY":
        return local_date(now).isoformat()
    if quest_type == "WEEKLY":
        return get_week_iso(local_date(now))
    return SPECIAL_PERIOD_KEY


def quest_expiry(quest_type: str, now: datetime | None = None) -> datetime | None:
    """When an assignment made at ``now`` stops counting. SPECIAL quests never expire."""
    if quest_type == "DAILY":
        return day_bounds(now)[1]
    if quest_type == "WEEKLY":
        return week_bounds(now)[1]
    return None
