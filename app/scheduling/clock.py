"""Day boundary helpers. The algorithms never read the wall clock themselves."""
from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

DAY = timedelta(days=1)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps (SQLite drops tzinfo) and normalize aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(moment: datetime, tz_name: str = "UTC") -> datetime:
    """Return local midnight for ``moment`` in the given IANA timezone."""
    tz = ZoneInfo(tz_name)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(tz)
    return datetime.combine(local.date(), time.min, tzinfo=tz)


def normalize_today_start(today_start: datetime, tz_name: str = "UTC") -> datetime:
    """
    Re-express a caller-supplied midnight in a named zone.

    Naive values are read as wall time in ``tz_name``. Aware values keep their
    instant but trade a fixed offset for the zone, so later days in the window
    pick up DST changes.
    """
    tz = ZoneInfo(tz_name)
    if today_start.tzinfo is None:
        return today_start.replace(tzinfo=tz)
    return today_start.astimezone(tz)


def day_offset(moment: datetime, today_start: datetime) -> int:
    """Whole calendar days between ``today_start`` and ``moment`` in today's timezone."""
    local = ensure_utc(moment).astimezone(today_start.tzinfo)
    return (local.date() - today_start.date()).days


def anchored(today_start: datetime, offset: int, hour: int) -> datetime:
    """Timestamp for ``offset`` days after today at a fixed local hour."""
    day = today_start.date() + timedelta(days=offset)
    return datetime.combine(day, time(hour=hour), tzinfo=today_start.tzinfo)
