from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Tuple
from zoneinfo import ZoneInfo

END_OF_DAY = time(23, 59, 59, 999000)


def utcnow() -> datetime:
    return datetime.now(UTC)


def today(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()


def day_start(day: date, tz_name: str) -> datetime:
    return datetime.combine(day, time.min, tzinfo=ZoneInfo(tz_name)).astimezone(UTC)


def day_end(day: date, tz_name: str) -> datetime:
    return datetime.combine(day, END_OF_DAY, tzinfo=ZoneInfo(tz_name)).astimezone(UTC)


def day_bounds(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """Inclusive ``[00:00:00.000, 23:59:59.999]`` of ``day`` in ``tz_name``, in UTC."""
    return day_start(day, tz_name), day_end(day, tz_name)
