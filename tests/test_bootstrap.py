# tests/test_bootstrap.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskstreak.cli.bootstrap import build_suggestion_provider, build_week_planner, create_initial_state
from taskstreak.config import Settings
from taskstreak.connectors.console_connector import run_console_loop
from taskstreak.llm.offline import OfflineLLMClient


@pytest.fixture()
def env_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.delenv("TASKSTREAK_OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.setenv("TASKSTREAK_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("TASKSTREAK_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("TASKSTREAK_USER_ID", "alice")
    monkeypatch.setenv("TASKSTREAK_LLM_MODELS", "a/one, b/two")
    monkeypatch.setenv("TASKSTREAK_MAX_WRITE_ATTEMPTS", "0")
    monkeypatch.setenv("TASKSTREAK_PLAN_MAX_TASKS", "3")
    return Settings.from_env()


def test_settings_from_env(env_settings: Settings, tmp_path: Path) -> None:
    assert env_settings.timezone == "Europe/Berlin"
    assert env_settings.default_user_id == "alice"
    assert env_settings.llm_models == ["a/one", "b/two"]
    assert env_settings.max_write_attempts == 1
    assert env_settings.plan_max_tasks == 3
    assert env_settings.plan_timeout_seconds == 90.0
    assert env_settings.tasks_db_path == tmp_path / "data" / "tasks.sqlite3"
    assert env_settings.openrouter_api_key is None


def test_initial_state_without_api_key_uses_offline_llm(env_settings: Settings) -> None:
    state = create_initial_state(settings=env_settings)

    assert state.user_id == "alice"
    assert state.controller.day_boundary.timezone_name == "Europe/Berlin"
    assert state.controller.profiles.get_aggregate("alice") is not None
    assert env_settings.tasks_db_path.exists()

    provider = build_suggestion_provider(env_settings)
    assert provider is not None
    assert isinstance(provider._llm, OfflineLLMClient)

    planner = build_week_planner(env_settings)
    assert planner is not None
    assert isinstance(planner._llm, OfflineLLMClient)
    assert state.controller.planner is not None


def test_console_loop_runs_commands(
    env_settings: Settings, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    state = create_initial_state(settings=env_settings)
    lines = iter(["/add Write a post", "", "hello", "/week", "/plan", "/week 1", "/exit"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(lines))

    run_console_loop(state)

    out = capsys.readouterr().out
    assert "Write a post" in out
    assert "Commands start with '/'" in out
    assert "0 of 1 tasks completed" in out
    assert "Review and improve your website's homepage" in out
