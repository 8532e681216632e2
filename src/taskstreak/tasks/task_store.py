# src/taskstreak/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import uuid
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from ..core.errors import ValidationError
from .task_models import Metric, Task, TaskPriority, TaskStatus
from .weeks import week_start_for

logger = logging.getLogger(__name__)


def _ts(value: datetime | None) -> float | None:
    return value.timestamp() if value is not None else None


def _dt(raw: Any) -> datetime | None:
    if raw is None:
        return None
    return datetime.fromtimestamp(float(raw), tz=UTC)


def _d(raw: Any) -> date | None:
    if not raw:
        return None
    return date.fromisoformat(str(raw))


class TaskStore:
    """
    SQLite task store.

    The schema is simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection

    Write errors (sqlite3.Error) propagate; the lifecycle controller owns rollback.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT '',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    estimated_time TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    week_start_date TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("started_at", "REAL")
            add_col("completed_at", "REAL")
            add_col("completed_on", "TEXT")
            add_col("actual_time_minutes", "INTEGER")
            add_col("suggested_approach", "TEXT")
            add_col("accepted_approach", "INTEGER")
            add_col("user_approach", "TEXT")
            add_col("result_notes", "TEXT NOT NULL DEFAULT ''")
            add_col("metrics_tracked", "TEXT NOT NULL DEFAULT '{}'")

            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_user_week ON tasks(user_id, week_start_date)"
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_user_status ON tasks(user_id, status, completed_on)"
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _metrics_to_str(metrics: dict[str, Metric] | None) -> str:
        if not metrics:
            return "{}"
        return json.dumps({k: m.to_dict() for k, m in metrics.items()}, ensure_ascii=False)

    @staticmethod
    def _str_to_metrics(s: str | None) -> dict[str, Metric]:
        if not s:
            return {}
        try:
            val = json.loads(s)
        except ValueError:
            logger.warning("Unreadable metrics_tracked JSON; treating as empty.")
            return {}
        if not isinstance(val, dict):
            return {}
        out: dict[str, Metric] = {}
        for name, raw in val.items():
            if isinstance(raw, dict):
                out[str(name)] = Metric(value=str(raw.get("value", "")), unit=str(raw.get("unit", "")))
        return out

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        accepted = row["accepted_approach"]
        return Task(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            category=str(row["category"] or ""),
            priority=TaskPriority.parse(row["priority"]),
            estimated_time=str(row["estimated_time"] or ""),
            status=TaskStatus.from_db(row["status"]),
            week_start_date=date.fromisoformat(row["week_start_date"]),
            created_at=_dt(row["created_at"]) or datetime.fromtimestamp(0, tz=UTC),
            updated_at=_dt(row["updated_at"]) or datetime.fromtimestamp(0, tz=UTC),
            started_at=_dt(row["started_at"]),
            completed_at=_dt(row["completed_at"]),
            completed_on=_d(row["completed_on"]),
            actual_time_minutes=(
                int(row["actual_time_minutes"]) if row["actual_time_minutes"] is not None else None
            ),
            suggested_approach=row["suggested_approach"],
            accepted_approach=bool(accepted) if accepted is not None else None,
            user_approach=row["user_approach"],
            result_notes=str(row["result_notes"] or ""),
            metrics_tracked=self._str_to_metrics(row["metrics_tracked"]),
        )

    def _select(self, sql: str, params: tuple[Any, ...]) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT COUNT(*) FROM tasks")
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def count_completed(self, user_id: str) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT COUNT(*) FROM tasks WHERE user_id = ? AND status = 'completed'",
                (user_id,),
            )
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        user_id: str,
        title: str,
        week_start_date: date,
        description: str = "",
        category: str = "",
        priority: TaskPriority | str | None = None,
        estimated_time: str = "",
        now: datetime | None = None,
    ) -> Task:
        if not user_id or not user_id.strip():
            raise ValidationError("user_id is required")
        if not title or not title.strip():
            raise ValidationError("title is required")

        now = now or datetime.now(UTC)
        task = Task(
            id=uuid.uuid4().hex,
            user_id=user_id.strip(),
            title=title.strip(),
            description=(description or "").strip(),
            category=(category or "").strip(),
            priority=TaskPriority.parse(priority),
            estimated_time=(estimated_time or "").strip(),
            week_start_date=week_start_for(week_start_date),
            created_at=now,
            updated_at=now,
        )
        self.upsert(task)
        logger.debug(
            "Task added id=%s user=%s week=%s category=%s",
            task.id,
            task.user_id,
            task.week_start_date,
            task.category,
        )
        return task

    def get(self, task_id: str) -> Task | None:
        rows = self._select("SELECT * FROM tasks WHERE id = ?", (str(task_id),))
        return rows[0] if rows else None

    def upsert(self, task: Task) -> None:
        task.validate()
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, user_id, title, description, category, priority, estimated_time,
                    status, week_start_date, created_at, updated_at,
                    started_at, completed_at, completed_on, actual_time_minutes,
                    suggested_approach, accepted_approach, user_approach,
                    result_notes, metrics_tracked
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    description = excluded.description,
                    category = excluded.category,
                    priority = excluded.priority,
                    estimated_time = excluded.estimated_time,
                    status = excluded.status,
                    updated_at = excluded.updated_at,
                    started_at = excluded.started_at,
                    completed_at = excluded.completed_at,
                    completed_on = excluded.completed_on,
                    actual_time_minutes = excluded.actual_time_minutes,
                    suggested_approach = excluded.suggested_approach,
                    accepted_approach = excluded.accepted_approach,
                    user_approach = excluded.user_approach,
                    result_notes = excluded.result_notes,
                    metrics_tracked = excluded.metrics_tracked
                """,
                (
                    task.id,
                    task.user_id,
                    task.title,
                    task.description,
                    task.category,
                    task.priority.value,
                    task.estimated_time,
                    task.status.value,
                    task.week_start_date.isoformat(),
                    _ts(task.created_at),
                    _ts(task.updated_at),
                    _ts(task.started_at),
                    _ts(task.completed_at),
                    task.completed_on.isoformat() if task.completed_on else None,
                    task.actual_time_minutes,
                    task.suggested_approach,
                    None if task.accepted_approach is None else int(task.accepted_approach),
                    task.user_approach,
                    task.result_notes,
                    self._metrics_to_str(task.metrics_tracked),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def query_by_user_and_week(self, user_id: str, week_start: date) -> list[Task]:
        """Tasks whose stored week_start_date equals week_start (never re-derived)."""
        return self._select(
            """
            SELECT *
            FROM tasks
            WHERE user_id = ?
              AND week_start_date = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (user_id, week_start.isoformat()),
        )

    def list_by_status(self, user_id: str, status: TaskStatus) -> list[Task]:
        return self._select(
            """
            SELECT *
            FROM tasks
            WHERE user_id = ?
              AND status = ?
            ORDER BY COALESCE(started_at, created_at) DESC
            """,
            (user_id, status.value),
        )

    def list_activity_dates(self, user_id: str, category: str | None = None) -> set[date]:
        """Calendar dates with >= 1 completed task (optionally within one category)."""
        sql = (
            "SELECT DISTINCT completed_on FROM tasks "
            "WHERE user_id = ? AND status = 'completed' AND completed_on IS NOT NULL"
        )
        params: list[Any] = [user_id]
        if category is not None:
            sql += " AND category = ?"
            params.append(category)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(sql, params)
            return {date.fromisoformat(r["completed_on"]) for r in cur.fetchall()}
        finally:
            conn.close()
