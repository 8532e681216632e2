# src/taskstreak/tasks/weeks.py

from __future__ import annotations

"""
Weekly partitioner.

Weeks are ISO weeks: Monday is the first day, Sunday the last.
A task's week is fixed at creation (week_start_date) and never re-derived.
"""

from datetime import date, datetime, timedelta

from ..core.errors import ValidationError

DAYS_PER_WEEK = 7


def _as_date(day: date | datetime) -> date:
    return day.date() if isinstance(day, datetime) else day


def week_start_for(day: date | datetime) -> date:
    """Monday <= day. Sunday belongs to the week that started six days earlier."""
    d = _as_date(day)
    return d - timedelta(days=d.weekday())


def resolve_week(offset: int, reference_date: date | datetime) -> date:
    """0 = week containing reference_date, +n = n weeks ahead, -n = n weeks back."""
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise ValidationError(f"Week offset must be a whole number, got {offset!r}")
    return week_start_for(reference_date) + timedelta(days=DAYS_PER_WEEK * offset)


def week_end_for(week_start: date) -> date:
    return week_start_for(week_start) + timedelta(days=DAYS_PER_WEEK - 1)


def week_days(week_start: date) -> list[date]:
    start = week_start_for(week_start)
    return [start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def parse_week_start(raw: str | date) -> date:
    """Accept 'YYYY-MM-DD' (or a date) and normalize it to its Monday."""
    if isinstance(raw, date):
        return week_start_for(raw)
    try:
        return week_start_for(date.fromisoformat(raw.strip()[:10]))
    except ValueError:
        raise ValidationError(f"Not a date: {raw!r} (expected YYYY-MM-DD)") from None


def format_week_range(week_start: date) -> str:
    start = week_start_for(week_start)
    end = week_end_for(start)
    return f"{start.strftime('%B')} {start.day} - {end.strftime('%B')} {end.day}"
