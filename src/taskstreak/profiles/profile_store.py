# src/taskstreak/profiles/profile_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from datetime import date
from pathlib import Path

from .profile_models import PlatformStreak, ProfileAggregate

logger = logging.getLogger(__name__)


def _d(raw: str | None) -> date | None:
    return date.fromisoformat(raw) if raw else None


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


class ProfileStore:
    """
    SQLite store for per-user aggregates and per-platform streaks.

    Profiles are created with zero counters (onboarding) and removed only with the account.
    Each method opens its own SQLite connection.
    """

    def __init__(self, db_path: str | Path = "profiles.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("ProfileStore ready db=%s", self._db_path)

    def close(self) -> None:
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    user_id TEXT PRIMARY KEY,
                    current_streak INTEGER NOT NULL DEFAULT 0,
                    best_streak INTEGER NOT NULL DEFAULT 0,
                    last_activity_date TEXT,
                    total_tasks_completed INTEGER NOT NULL DEFAULT 0,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS platform_streaks (
                    user_id TEXT NOT NULL,
                    platform TEXT NOT NULL,
                    current_streak INTEGER NOT NULL DEFAULT 0,
                    best_streak INTEGER NOT NULL DEFAULT 0,
                    last_activity_date TEXT,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (user_id, platform)
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_aggregate(row: sqlite3.Row) -> ProfileAggregate:
        return ProfileAggregate(
            user_id=str(row["user_id"]),
            current_streak=int(row["current_streak"] or 0),
            best_streak=int(row["best_streak"] or 0),
            last_activity_date=_d(row["last_activity_date"]),
            total_tasks_completed=int(row["total_tasks_completed"] or 0),
        )

    @staticmethod
    def _row_to_platform(row: sqlite3.Row) -> PlatformStreak:
        return PlatformStreak(
            user_id=str(row["user_id"]),
            platform=str(row["platform"]),
            current_streak=int(row["current_streak"] or 0),
            best_streak=int(row["best_streak"] or 0),
            last_activity_date=_d(row["last_activity_date"]),
        )

    # ---- profile aggregate ----

    def ensure_profile(self, user_id: str) -> ProfileAggregate:
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT OR IGNORE INTO profiles(user_id, updated_at) VALUES (?, ?)",
                (user_id, time.time()),
            )
            conn.commit()
        finally:
            conn.close()
        agg = self.get_aggregate(user_id)
        if agg is None:
            raise RuntimeError(f"Profile insert did not persist for user_id={user_id}")
        return agg

    def get_aggregate(self, user_id: str) -> ProfileAggregate | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,))
            row = cur.fetchone()
            return self._row_to_aggregate(row) if row else None
        finally:
            conn.close()

    def update_aggregate(self, aggregate: ProfileAggregate) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO profiles(
                    user_id, current_streak, best_streak, last_activity_date,
                    total_tasks_completed, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    current_streak = excluded.current_streak,
                    best_streak = excluded.best_streak,
                    last_activity_date = excluded.last_activity_date,
                    total_tasks_completed = excluded.total_tasks_completed,
                    updated_at = excluded.updated_at
                """,
                (
                    aggregate.user_id,
                    int(aggregate.current_streak),
                    int(aggregate.best_streak),
                    _iso(aggregate.last_activity_date),
                    max(0, int(aggregate.total_tasks_completed)),
                    time.time(),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    # ---- platform streaks ----

    def get_platform_streak(self, user_id: str, platform: str) -> PlatformStreak | None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM platform_streaks WHERE user_id = ? AND platform = ?",
                (user_id, platform),
            )
            row = cur.fetchone()
            return self._row_to_platform(row) if row else None
        finally:
            conn.close()

    def upsert_platform_streak(self, streak: PlatformStreak) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO platform_streaks(
                    user_id, platform, current_streak, best_streak, last_activity_date, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, platform) DO UPDATE SET
                    current_streak = excluded.current_streak,
                    best_streak = excluded.best_streak,
                    last_activity_date = excluded.last_activity_date,
                    updated_at = excluded.updated_at
                """,
                (
                    streak.user_id,
                    streak.platform,
                    int(streak.current_streak),
                    int(streak.best_streak),
                    _iso(streak.last_activity_date),
                    time.time(),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def delete_platform_streak(self, user_id: str, platform: str) -> None:
        """Used only to undo a lazily created row during rollback."""
        conn = self._get_conn()
        try:
            conn.execute(
                "DELETE FROM platform_streaks WHERE user_id = ? AND platform = ?",
                (user_id, platform),
            )
            conn.commit()
        finally:
            conn.close()

    def list_platform_streaks(self, user_id: str) -> list[PlatformStreak]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT *
                FROM platform_streaks
                WHERE user_id = ?
                ORDER BY current_streak DESC, platform ASC
                """,
                (user_id,),
            )
            return [self._row_to_platform(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def delete_user(self, user_id: str) -> None:
        """Account deletion: the only path that removes a profile."""
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM platform_streaks WHERE user_id = ?", (user_id,))
            conn.execute("DELETE FROM profiles WHERE user_id = ?", (user_id,))
            conn.commit()
        finally:
            conn.close()
        logger.info("Profile deleted user_id=%s", user_id)
