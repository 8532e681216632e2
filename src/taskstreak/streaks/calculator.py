# src/taskstreak/streaks/calculator.py

from __future__ import annotations

"""
Streak calculator.

Pure functions over a set of activity dates (calendar dates with >= 1 completed task).
Every streak in the system (daily profile streak, per-platform streak, read-time
summaries) is recomputed from history with these functions.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

ONE_DAY = timedelta(days=1)


@dataclass(slots=True, frozen=True)
class StreakResult:
    current: int
    best: int
    last_activity_date: date | None


def run_ending_at(days: set[date], end: date) -> int:
    """Length of the unbroken run of active days ending at `end` (0 if `end` is inactive)."""
    n = 0
    day = end
    while day in days:
        n += 1
        day -= ONE_DAY
    return n


def longest_run(days: Iterable[date]) -> int:
    best = 0
    run = 0
    prev: date | None = None
    for day in sorted(set(days)):
        run = run + 1 if prev is not None and day - prev == ONE_DAY else 1
        best = max(best, run)
        prev = day
    return best


def compute_streak(activity_dates: Iterable[date], as_of: date) -> StreakResult:
    """
    Compute (current, best) as of a calendar date.

    - current: run ending today, or ending yesterday when today has no activity yet
      (today is "pending", not broken). Any older gap resets it to 0.
    - best: longest run over the whole history up to as_of.
    """
    days = {d for d in activity_dates if d <= as_of}
    if not days:
        return StreakResult(current=0, best=0, last_activity_date=None)

    if as_of in days:
        current = run_ending_at(days, as_of)
    else:
        current = run_ending_at(days, as_of - ONE_DAY)

    return StreakResult(
        current=current,
        best=longest_run(days),
        last_activity_date=max(days),
    )
