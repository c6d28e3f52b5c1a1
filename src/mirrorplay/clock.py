"""Injectable clock and calendar-day helpers.

Every "today" decision in the engine (streaks, usage counts, login claims,
weekly challenges) goes through a Clock so the day boundary is explicit and
tests can freeze time.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def ensure_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are treated as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_monday(day: date) -> date:
    """Get the Monday of the ISO week containing day."""
    return day - timedelta(days=day.weekday())


class Clock:
    """Wall clock bound to the timezone that defines a calendar day."""

    def __init__(self, tz: str = "UTC") -> None:
        self.tz = ZoneInfo(tz)

    def now(self) -> datetime:
        raise NotImplementedError

    def local_date(self, dt: datetime) -> date:
        """Calendar date of dt in the configured day-boundary timezone."""
        return ensure_utc(dt).astimezone(self.tz).date()

    def today(self) -> date:
        return self.local_date(self.now())

    def day_bounds(self, day: date | None = None) -> tuple[datetime, datetime]:
        """UTC [start, end) of a local calendar day."""
        if day is None:
            day = self.today()
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    def week_bounds(self, day: date | None = None) -> tuple[date, date]:
        """Monday and Sunday of the week containing day."""
        if day is None:
            day = self.today()
        monday = get_monday(day)
        return monday, monday + timedelta(days=6)


class SystemClock(Clock):
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(Clock):
    """Clock pinned to a fixed instant; advance() moves it forward."""

    def __init__(self, now: datetime, tz: str = "UTC") -> None:
        super().__init__(tz)
        self._now = ensure_utc(now)

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = ensure_utc(now)

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by a timedelta built from kwargs (days=1, hours=3, ...)."""
        self._now = self._now + timedelta(**kwargs)
        return self._now
