# tests/test_duration.py

from __future__ import annotations

import pytest

from taskstreak.tasks.duration import parse_duration_minutes


@pytest.mark.parametrize(
    ("text", "minutes"),
    [
        ("30 min", 30),
        ("45", 45),
        ("2 hours", 120),
        ("1.5h", 90),
        ("1h 30m", 90),
        ("1-2 hours", 120),
        ("30-45 min", 45),
        ("1 to 2 hrs", 120),
    ],
)
def test_parses_common_estimates(text: str, minutes: int) -> None:
    assert parse_duration_minutes(text) == minutes


@pytest.mark.parametrize("text", [None, "", "   ", "soon", "2 days"])
def test_unparseable_estimates_are_none(text: str | None) -> None:
    assert parse_duration_minutes(text) is None
