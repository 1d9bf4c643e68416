"""Clock abstraction used for every date comparison in the engine."""

from datetime import date, datetime
from typing import Protocol


class Clock(Protocol):
    """Source of the current instant and calendar date."""

    def now(self) -> datetime:
        """Return the current local wall-clock instant."""
        ...

    def today(self) -> date:
        """Return the current calendar date."""
        ...


class SystemClock:
    """Clock backed by the host's local time."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


system_clock = SystemClock()
