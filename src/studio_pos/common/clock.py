"""Single source of "today" for every service.

Expiration and birthday rules compare calendar days in the studio's local
timezone. Services take a ``Clock`` so tests can pin the date.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from ..core.constants import DEFAULT_TIMEZONE


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        raise NotImplementedError

    def today_iso(self) -> str:
        raise NotImplementedError


class StudioClock:
    """Wall clock in the studio's timezone."""

    def __init__(self, timezone: str = DEFAULT_TIMEZONE):
        self._tz = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()

    def today_iso(self) -> str:
        return self.today().isoformat()


@dataclass
class FixedClock:
    """Clock pinned to a given instant; ``advance_to`` moves it."""

    current: datetime = field(default_factory=lambda: datetime(2024, 1, 1, 9, 0, 0))

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def today_iso(self) -> str:
        return self.today().isoformat()

    def advance_to(self, moment: datetime) -> None:
        self.current = moment
