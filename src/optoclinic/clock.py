"""Injectable time source for timestamps and calendar windows."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

__all__ = ["Clock", "FixedClock", "SystemClock"]


class Clock(Protocol):
    """Minimal contract for a time source."""

    def now(self) -> datetime:
        """Current timezone-aware datetime."""
        ...

    def today(self) -> date:
        """Current calendar date in the clock's timezone."""
        ...


class SystemClock:
    """Wall clock in the clinic's timezone."""

    def __init__(self, tz_name: str = "UTC") -> None:
        self._tz: tzinfo = UTC if tz_name.upper() == "UTC" else ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Clock that only moves when told to (tests, replays)."""

    def __init__(self, now: datetime) -> None:
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        self._now = now

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def advance(self, delta: timedelta) -> None:
        self._now += delta
