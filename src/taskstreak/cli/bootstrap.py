# src/taskstreak/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations (stores, clock, day boundary, LLM) into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import DayBoundary, SystemClock
from ..core.ports import LLMClient, SuggestionProvider, WeekPlanner
from ..core.state import AppState
from ..llm.client import OpenRouterLLMClient
from ..llm.offline import OfflineLLMClient
from ..profiles.profile_store import ProfileStore
from ..suggestions.approach import LLMSuggestionProvider
from ..suggestions.weekly_plan import LLMWeekPlanner
from ..tasks.lifecycle import TaskLifecycleController
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.profiles_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_llm_client(settings) -> LLMClient:
    try:
        return OpenRouterLLMClient(settings)
    except RuntimeError as e:
        # Fallback for demos / local runs without external services.
        logger.info("LLM unavailable (%s); using offline suggestions.", e)
        return OfflineLLMClient()


def build_suggestion_provider(settings, llm: LLMClient | None = None) -> SuggestionProvider | None:
    if not getattr(settings, "suggestions_enabled", True):
        return None
    return LLMSuggestionProvider(
        llm or build_llm_client(settings),
        timeout_seconds=settings.suggestion_timeout_seconds,
        max_chars=settings.suggestion_max_chars,
    )


def build_week_planner(settings, llm: LLMClient | None = None) -> WeekPlanner | None:
    if not getattr(settings, "suggestions_enabled", True):
        return None
    return LLMWeekPlanner(
        llm or build_llm_client(settings),
        timeout_seconds=settings.plan_timeout_seconds,
        max_chars=settings.plan_max_chars,
        max_tasks=settings.plan_max_tasks,
    )


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    llm = build_llm_client(settings)

    controller = TaskLifecycleController(
        TaskStore(settings.tasks_db_path),
        ProfileStore(settings.profiles_db_path),
        clock=SystemClock(),
        day_boundary=DayBoundary(settings.timezone),
        suggestions=build_suggestion_provider(settings, llm),
        planner=build_week_planner(settings, llm),
        max_write_attempts=settings.max_write_attempts,
    )
    controller.onboard_user(settings.default_user_id)

    return AppState(
        settings=settings,
        controller=controller,
        user_id=settings.default_user_id,
    )
