"""
Injectable clock.

Nothing in the engine reads the system clock directly. Streaks, quests and
play sessions need "now" plus the player's calendar; both come from a Clock.
"""
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from core.config import settings


class Clock(Protocol):
    tz: tzinfo

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in a fixed time zone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = ZoneInfo(tz_name or settings.DEFAULT_TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """Clock frozen at a given instant; advance() moves it forward."""

    def __init__(self, at: datetime, tz: Optional[tzinfo] = None):
        self.tz = tz or at.tzinfo or ZoneInfo(settings.DEFAULT_TIMEZONE)
        self._now = ensure_aware(at, self.tz)

    def now(self) -> datetime:
        return self._now

    def set(self, at: datetime) -> None:
        self._now = ensure_aware(at, self.tz)

    def advance(self, **kwargs) -> datetime:
        """Move forward by timedelta(**kwargs) and return the new instant."""
        self._now = self._now + timedelta(**kwargs)
        return self._now


def ensure_aware(at: datetime, tz: tzinfo) -> datetime:
    """Naive timestamps are taken to be wall time in `tz`."""
    if at.tzinfo is None:
        return at.replace(tzinfo=tz)
    return at


def local_date(at: datetime, tz: tzinfo) -> date:
    """Calendar date of `at` as seen in `tz`."""
    return ensure_aware(at, tz).astimezone(tz).date()


def local_hour(at: datetime, tz: tzinfo) -> int:
    return ensure_aware(at, tz).astimezone(tz).hour


def week_start(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())
