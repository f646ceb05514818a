"""
Scoring periods and UTC day boundaries.

All timestamps in storage are naive UTC. Everything that needs "today" or a
window start goes through this module so leaderboard windows, streak days and
the daily challenge reset agree on where a day begins.
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional, Union

import pytz

from config import WEEKLY_WINDOW_DAYS
from errors import InvalidInputError


class Period(str, Enum):
    ALL_TIME = "ALL_TIME"
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"

    @property
    def is_windowed(self) -> bool:
        return self is not Period.ALL_TIME

    @classmethod
    def parse(cls, value: Optional[str]) -> "Period":
        """Accept enum names ("WEEKLY") and timeframe slugs ("weekly", "all-time")."""
        if not value:
            return cls.ALL_TIME
        key = value.strip().upper().replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            raise InvalidInputError(
                f"Unknown leaderboard period: {value}",
                {"allowed": [p.value for p in cls]},
            )


def utcnow() -> datetime:
    return datetime.now(pytz.utc).replace(tzinfo=None)


def to_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(pytz.utc).replace(tzinfo=None)


def utc_day_start(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = to_naive_utc(day).date()
    return datetime.combine(day, time.min)


def next_utc_midnight(now: datetime) -> datetime:
    return utc_day_start(now) + timedelta(days=1)


def window_start(period: Period, now: datetime) -> Optional[datetime]:
    """
    Earliest accepted-submission timestamp that still qualifies a user for
    ``period``. ALL_TIME has no window and returns None.

    MONTHLY is calendar-month-to-date; WEEKLY is a trailing window ending now.
    """
    now = to_naive_utc(now)
    if period is Period.MONTHLY:
        return datetime(now.year, now.month, 1)
    if period is Period.WEEKLY:
        return now - timedelta(days=WEEKLY_WINDOW_DAYS)
    return None


def parse_utc_date(value: Optional[str], now: Optional[datetime] = None) -> date:
    """
    Normalize a date parameter to a UTC calendar day.

    Accepts "2026-10-19" or a full ISO timestamp; timestamps carrying an
    offset are converted to UTC first. A missing value means today.
    """
    if value is None or not value.strip():
        return to_naive_utc(now or utcnow()).date()

    raw = value.strip()
    try:
        if len(raw) == 10:
            return date.fromisoformat(raw)
        moment = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidInputError(f"Malformed date: {value}", {"expected": "YYYY-MM-DD"})
    return to_naive_utc(moment).date()
