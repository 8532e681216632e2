# src/taskstreak/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The lifecycle controller depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers swappable and makes testing easier.
"""

from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    import threading

    from ..profiles.profile_models import PlatformStreak, ProfileAggregate
    from ..suggestions.approach import SuggestionContext
    from ..suggestions.weekly_plan import WeekPlan
    from ..tasks.task_models import Task, TaskStatus

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class Clock(Protocol):
    def now(self) -> datetime: ...


class LLMClient(Protocol):
    """
    Streaming chat completion client (OpenAI/OpenRouter-compatible).

    `timeout` bounds the whole call in seconds, across model fallbacks.
    """
    def stream_chat(
        self,
        messages: list[ChatMessage],
        system_prompt: str,
        *,
        timeout: float | None = None,
    ) -> Iterable[str]: ...


class SuggestionProvider(Protocol):
    """Best-effort approach suggestions; may raise SuggestionUnavailable."""
    def suggest_approach(
        self,
        task: Task,
        context: SuggestionContext | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> str: ...


class WeekPlanner(Protocol):
    """Best-effort weekly plan generation; may raise SuggestionUnavailable."""
    def plan_week(
        self,
        past_tasks: list[Task],
        week_start: date,
        context: SuggestionContext | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> WeekPlan: ...


class TaskRepo(Protocol):
    def get(self, task_id: str) -> Task | None: ...
    def upsert(self, task: Task) -> None: ...

    def add_task(
        self,
        *,
        user_id: str,
        title: str,
        week_start_date: date,
        description: str = "",
        category: str = "",
        priority: Any = None,
        estimated_time: str = "",
        now: datetime | None = None,
    ) -> Task: ...

    def query_by_user_and_week(self, user_id: str, week_start: date) -> list[Task]: ...
    def list_by_status(self, user_id: str, status: TaskStatus) -> list[Task]: ...
    def list_activity_dates(self, user_id: str, category: str | None = None) -> set[date]: ...
    def count_tasks(self) -> int: ...
    def count_completed(self, user_id: str) -> int: ...


class ProfileRepo(Protocol):
    def ensure_profile(self, user_id: str) -> ProfileAggregate: ...
    def get_aggregate(self, user_id: str) -> ProfileAggregate | None: ...
    def update_aggregate(self, aggregate: ProfileAggregate) -> None: ...

    def get_platform_streak(self, user_id: str, platform: str) -> PlatformStreak | None: ...
    def upsert_platform_streak(self, streak: PlatformStreak) -> None: ...
    def delete_platform_streak(self, user_id: str, platform: str) -> None: ...
    def list_platform_streaks(self, user_id: str) -> list[PlatformStreak]: ...

    def delete_user(self, user_id: str) -> None: ...
