# tests/test_streak_calculator.py

from __future__ import annotations

from datetime import date, timedelta

from taskstreak.streaks.calculator import StreakResult, compute_streak, longest_run, run_ending_at

D = date(2024, 3, 15)


def days_before(*offsets: int) -> set[date]:
    return {D - timedelta(days=n) for n in offsets}


def test_no_activity() -> None:
    assert compute_streak(set(), D) == StreakResult(current=0, best=0, last_activity_date=None)


def test_activity_only_today() -> None:
    res = compute_streak({D}, D)
    assert res.current == 1
    assert res.best == 1
    assert res.last_activity_date == D


def test_three_consecutive_days() -> None:
    res = compute_streak(days_before(2, 1, 0), D)
    assert res.current == 3
    assert res.best >= 3


def test_gap_breaks_current_but_best_persists() -> None:
    res = compute_streak(days_before(5), D)
    assert res.current == 0
    assert res.best == 1
    assert res.last_activity_date == D - timedelta(days=5)


def test_today_pending_keeps_yesterdays_run() -> None:
    res = compute_streak(days_before(3, 2, 1), D)
    assert res.current == 3


def test_fresh_completion_after_gap_starts_new_streak() -> None:
    res = compute_streak(days_before(6, 5, 4, 0), D)
    assert res.current == 1
    assert res.best == 3


def test_best_is_longest_run_in_history() -> None:
    history = days_before(30, 29, 28, 27, 10, 1, 0)
    res = compute_streak(history, D)
    assert res.current == 2
    assert res.best == 4


def test_dates_after_as_of_are_ignored() -> None:
    res = compute_streak({D, D + timedelta(days=1)}, D)
    assert res.current == 1
    assert res.last_activity_date == D


def test_compute_is_idempotent() -> None:
    history = days_before(9, 8, 2, 1)
    assert compute_streak(history, D) == compute_streak(history, D)


def test_helpers() -> None:
    history = days_before(4, 3, 1, 0)
    assert run_ending_at(history, D) == 2
    assert run_ending_at(history, D - timedelta(days=2)) == 0
    assert longest_run(history) == 2
    assert longest_run([]) == 0
