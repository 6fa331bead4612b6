"""Time sources for form defaults that depend on "today"."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def today(self) -> date:
        """Return the current calendar date."""
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Calendar date of the local machine."""

    def today(self) -> date:
        return datetime.now(timezone.utc).astimezone().date()


@dataclass(frozen=True, slots=True)
class FixedClock:
    """Pinned moment; naive values are read as UTC."""

    moment: datetime

    def today(self) -> date:
        if self.moment.tzinfo is None:
            return self.moment.replace(tzinfo=timezone.utc).date()
        return self.moment.date()
