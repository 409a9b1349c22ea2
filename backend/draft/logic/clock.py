"""Injectable wall-clock abstraction."""

from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current time. Always returns timezone-aware UTC datetimes."""

    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)
