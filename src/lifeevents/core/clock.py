from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """A manually advanced clock for tests and replays."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, minutes: float = 0.0, seconds: float = 0.0) -> datetime:
        self._now = self._now + timedelta(minutes=minutes, seconds=seconds)
        return self._now

    def set(self, moment: datetime):
        self._now = moment
