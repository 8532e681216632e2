# src/taskstreak/profiles/profile_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(slots=True)
class ProfileAggregate:
    """Per-user rollup. Mutated only by the lifecycle controller."""

    user_id: str
    current_streak: int = 0
    best_streak: int = 0
    last_activity_date: date | None = None
    total_tasks_completed: int = 0


@dataclass(slots=True)
class PlatformStreak:
    """Same counters as the profile, scoped to one category/platform."""

    user_id: str
    platform: str
    current_streak: int = 0
    best_streak: int = 0
    last_activity_date: date | None = None
