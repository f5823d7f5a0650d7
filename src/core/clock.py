"""Injectable clocks for "now" and "today"."""

from datetime import UTC, date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from src.core.config import settings


class Clock(Protocol):
    """Source of the current instant and the household's current date."""

    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Wall clock in UTC; 'today' is taken in the configured household timezone."""

    def __init__(self, timezone: str | None = None) -> None:
        self._tz = ZoneInfo(timezone or settings.timezone)

    def now(self) -> datetime:
        return datetime.now(UTC)

    def today(self) -> date:
        return datetime.now(self._tz).date()


class FixedClock:
    """Clock frozen at a given instant, for tests and historical replays.

    Naive instants are taken as UTC; "today" is the instant's date in the given
    timezone (UTC by default).
    """

    def __init__(self, instant: datetime, timezone: str = "UTC") -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        self._instant = instant
        self._tz = ZoneInfo(timezone)

    def now(self) -> datetime:
        return self._instant

    def today(self) -> date:
        return self._instant.astimezone(self._tz).date()


system_clock = SystemClock()
