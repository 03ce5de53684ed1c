from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from config import get_config_value


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to one instant; tests move it with advance()."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs) -> None:
        self._instant = self._instant + timedelta(**kwargs)


def configured_timezone() -> tzinfo:
    name = get_config_value("app", "timezone", "UTC")
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def calendar_day(now: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of `now` in the given zone (UTC when omitted)."""
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(tz or timezone.utc).date()


def js_weekday(day: date) -> int:
    """Weekday index with 0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency; tests override it with a FixedClock."""
    return _system_clock
