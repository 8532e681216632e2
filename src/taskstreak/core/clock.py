# src/taskstreak/core/clock.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from .ports import Clock


class SystemClock:
    """Wall clock (timezone-aware, UTC)."""

    def now(self) -> datetime:
        return datetime.now(UTC)


@dataclass(slots=True)
class FixedClock:
    """
    Manually driven clock for tests and replays.

    Naive datetimes are interpreted as UTC.
    """

    current: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC))

    def __post_init__(self) -> None:
        self.current = _aware(self.current)

    def now(self) -> datetime:
        return self.current

    def set(self, value: datetime) -> None:
        self.current = _aware(value)

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


class DayBoundary:
    """
    Day-boundary policy: maps an instant to the calendar date used for streaks.

    One timezone is applied uniformly to every instant (default UTC).
    """

    def __init__(self, timezone: str = "UTC") -> None:
        self.timezone_name = timezone or "UTC"
        self._tz = ZoneInfo(self.timezone_name)

    def __repr__(self) -> str:
        return f"DayBoundary({self.timezone_name!r})"

    def date_of(self, moment: datetime) -> date:
        return _aware(moment).astimezone(self._tz).date()

    def today(self, clock: Clock) -> date:
        return self.date_of(clock.now())


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
