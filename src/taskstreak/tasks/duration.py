# src/taskstreak/tasks/duration.py

from __future__ import annotations

import re

_NUM = r"(\d+(?:\.\d+)?)"

_RANGE_RE = re.compile(rf"^{_NUM}\s*(?:-|–|to)\s*{_NUM}\s*([a-z]*)$")
_PART_RE = re.compile(rf"{_NUM}\s*([a-z]+)?")

_HOUR_UNITS = {"h", "hr", "hrs", "hour", "hours"}
_MINUTE_UNITS = {"m", "min", "mins", "minute", "minutes"}


def _unit_factor(unit: str) -> int | None:
    if not unit or unit in _MINUTE_UNITS:
        return 1
    if unit in _HOUR_UNITS:
        return 60
    return None


def parse_duration_minutes(text: str | None) -> int | None:
    """
    Parse a free-text estimate ("30 min", "1-2 hours", "1h 30m") into minutes.

    Ranges resolve to their upper bound; bare numbers are minutes.
    Returns None when nothing sensible can be extracted.
    """
    if not text:
        return None
    s = text.strip().lower()
    if not s:
        return None

    m = _RANGE_RE.match(s)
    if m:
        factor = _unit_factor(m.group(3))
        if factor is None:
            return None
        return max(1, round(float(m.group(2)) * factor))

    total = 0.0
    matched = False
    for part in _PART_RE.finditer(s):
        factor = _unit_factor(part.group(2) or "")
        if factor is None:
            continue
        total += float(part.group(1)) * factor
        matched = True

    if not matched:
        return None
    return max(1, round(total))
