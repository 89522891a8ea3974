"""Shared request parameter helpers."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import HTTPException, status

from app.core.config import settings
from app.scheduling.clock import normalize_today_start, start_of_day


def resolve_zone(tz_name: Optional[str]) -> str:
    """Validate the caller's IANA zone, defaulting to ``SCHEDULER_TIMEZONE``."""
    name = tz_name or settings.scheduler_timezone
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Unknown timezone: {name}")
    return name


def resolve_today_start(today_start: Optional[datetime], tz_name: Optional[str] = None) -> datetime:
    """
    Caller's midnight expressed in a named zone, so day arithmetic follows DST.

    A fixed UTC offset such as ``-05:00`` is converted into the zone; without
    ``today_start`` the current local midnight in that zone is used.
    """
    zone = resolve_zone(tz_name)
    if today_start is None:
        return start_of_day(datetime.now(timezone.utc), zone)
    return normalize_today_start(today_start, zone)
