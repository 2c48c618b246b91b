"""Business-day helpers in the configured local timezone."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from app.config import get_settings


def local_day_range(
    date_from: Optional[date],
    date_to: Optional[date],
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Half-open datetime bounds covering whole local days."""

    tz = ZoneInfo(get_settings().timezone)
    start_dt = datetime.combine(date_from, time.min, tzinfo=tz) if date_from is not None else None
    end_dt = datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=tz) if date_to is not None else None
    return start_dt, end_dt