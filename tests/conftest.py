# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskstreak.core.clock import DayBoundary, FixedClock
from taskstreak.core.state import AppState
from taskstreak.profiles.profile_store import ProfileStore
from taskstreak.tasks.lifecycle import TaskLifecycleController
from taskstreak.tasks.task_store import TaskStore

from .fakes import FakeSuggestionProvider

USER = "u1"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskstreak-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        profiles_db_path=tmp_path / "profiles.sqlite3",
        timezone="UTC",
        default_user_id=USER,
        llm_models=["test/model"],
        suggestions_enabled=True,
        suggestion_timeout_seconds=5.0,
        suggestion_max_chars=2000,
        max_write_attempts=2,
    )


@pytest.fixture()
def clock() -> FixedClock:
    # 2024-01-01 is a Monday.
    return FixedClock(datetime(2024, 1, 2, 10, 0, tzinfo=UTC))


@pytest.fixture()
def task_store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def profile_store(settings: SimpleNamespace) -> ProfileStore:
    return ProfileStore(settings.profiles_db_path)


@pytest.fixture()
def suggestions() -> FakeSuggestionProvider:
    return FakeSuggestionProvider()


@pytest.fixture()
def controller(
    task_store: TaskStore,
    profile_store: ProfileStore,
    clock: FixedClock,
    suggestions: FakeSuggestionProvider,
) -> TaskLifecycleController:
    ctl = TaskLifecycleController(
        task_store,
        profile_store,
        clock=clock,
        day_boundary=DayBoundary("UTC"),
        suggestions=suggestions,
    )
    ctl.onboard_user(USER)
    return ctl


@pytest.fixture()
def state(settings: SimpleNamespace, controller: TaskLifecycleController) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: real SQLite stores are kept here because their correctness is part of
    what we want to test.
    """
    return AppState(settings=settings, controller=controller, user_id=USER)
