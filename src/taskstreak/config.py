# src/taskstreak/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "TASKSTREAK"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Streak policy ----
    timezone: str
    default_user_id: str

    # ---- LLM / OpenRouter ----
    openrouter_api_key: Optional[str]
    openrouter_base_url: str
    llm_models: List[str]
    extra_headers: Dict[str, str]
    llm_connect_timeout_seconds: float
    llm_read_timeout_seconds: float
    llm_first_token_timeout_seconds: float

    # ---- Suggestions ----
    suggestions_enabled: bool
    suggestion_timeout_seconds: float
    suggestion_max_chars: int
    plan_timeout_seconds: float
    plan_max_chars: int
    plan_max_tasks: int

    # ---- Storage ----
    max_write_attempts: int

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    profiles_db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _first_env(_k("APP_NAME"), default="taskstreak") or "taskstreak"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        timezone = _env(_k("TIMEZONE"), "UTC").strip() or "UTC"
        default_user_id = _env(_k("USER_ID"), "local-user").strip() or "local-user"

        openrouter_api_key = _first_env(_k("OPENROUTER_API_KEY"), "OPENROUTER_API_KEY", default=None)
        openrouter_base_url = _env(_k("OPENROUTER_BASE_URL"), "https://openrouter.ai/api/v1")

        http_referer = _env(_k("HTTP_REFERER"), "https://example.com")
        title = _env(_k("APP_TITLE"), app_name)
        extra_headers = {
            "HTTP-Referer": http_referer,
            "X-Title": title,
        }

        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "deepseek/deepseek-r1-0528-qwen3-8b:free",
                "deepseek/deepseek-chat-v3-0324:free",
                "qwen/qwen-2.5-72b-instruct:free",
            ],
        )

        first_token = _env_float(_k("LLM_FIRST_TOKEN_TIMEOUT_SECONDS"), 20.0)
        # keep read >= first_token as a sane baseline
        read_timeout = max(_env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 25.0), first_token)
        connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)

        suggestions_enabled = _env_bool(_k("SUGGESTIONS_ENABLED"), True)
        suggestion_timeout_seconds = _env_float(_k("SUGGESTION_TIMEOUT_SECONDS"), 45.0)
        suggestion_max_chars = _env_int(_k("SUGGESTION_MAX_CHARS"), 6000)
        plan_timeout_seconds = _env_float(_k("PLAN_TIMEOUT_SECONDS"), 90.0)
        plan_max_chars = _env_int(_k("PLAN_MAX_CHARS"), 12000)
        plan_max_tasks = max(1, _env_int(_k("PLAN_MAX_TASKS"), 7))

        max_write_attempts = max(1, _env_int(_k("MAX_WRITE_ATTEMPTS"), 2))

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskstreak"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        profiles_db_path = _env_path(_k("PROFILES_DB_PATH"), data_dir / "profiles.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            timezone=timezone,
            default_user_id=default_user_id,
            openrouter_api_key=openrouter_api_key,
            openrouter_base_url=openrouter_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            llm_connect_timeout_seconds=connect_timeout,
            llm_read_timeout_seconds=read_timeout,
            llm_first_token_timeout_seconds=first_token,
            suggestions_enabled=suggestions_enabled,
            suggestion_timeout_seconds=suggestion_timeout_seconds,
            suggestion_max_chars=suggestion_max_chars,
            plan_timeout_seconds=plan_timeout_seconds,
            plan_max_chars=plan_max_chars,
            plan_max_tasks=plan_max_tasks,
            max_write_attempts=max_write_attempts,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            profiles_db_path=profiles_db_path,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
