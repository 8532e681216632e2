# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import UTC, date, datetime

import pytest

from taskstreak.core.errors import ValidationError
from taskstreak.tasks.task_models import Metric, TaskStatus
from taskstreak.tasks.task_store import TaskStore

NOW = datetime(2024, 1, 2, 10, 0, tzinfo=UTC)
MONDAY = date(2024, 1, 1)


def complete(task, when: datetime, minutes: int = 10):
    return replace(
        task,
        status=TaskStatus.COMPLETED,
        started_at=task.started_at or when,
        completed_at=when,
        completed_on=when.date(),
        actual_time_minutes=minutes,
        updated_at=when,
    )


def test_add_and_get_roundtrip(task_store: TaskStore) -> None:
    t = task_store.add_task(
        user_id="u1",
        title="  Write newsletter ",
        week_start_date=date(2024, 1, 4),
        category="email",
        priority="high",
        estimated_time="1 hour",
        now=NOW,
    )
    assert t.title == "Write newsletter"
    assert t.week_start_date == MONDAY

    loaded = task_store.get(t.id)
    assert loaded == t
    assert task_store.count_tasks() == 1
    assert task_store.get("missing") is None


def test_add_requires_title_and_user(task_store: TaskStore) -> None:
    with pytest.raises(ValidationError):
        task_store.add_task(user_id="u1", title="  ", week_start_date=MONDAY, now=NOW)
    with pytest.raises(ValidationError):
        task_store.add_task(user_id="", title="x", week_start_date=MONDAY, now=NOW)


def test_upsert_persists_completion_and_metrics(task_store: TaskStore) -> None:
    t = task_store.add_task(user_id="u1", title="Post", week_start_date=MONDAY, now=NOW)
    done = replace(complete(t, NOW, 25), result_notes="went well", metrics_tracked={"likes": Metric("40")})
    task_store.upsert(done)

    loaded = task_store.get(t.id)
    assert loaded is not None
    assert loaded.status is TaskStatus.COMPLETED
    assert loaded.completed_on == NOW.date()
    assert loaded.actual_time_minutes == 25
    assert loaded.metrics_tracked == {"likes": Metric("40")}
    assert loaded.result_notes == "went well"


def test_upsert_does_not_move_week(task_store: TaskStore) -> None:
    t = task_store.add_task(user_id="u1", title="Post", week_start_date=MONDAY, now=NOW)
    task_store.upsert(replace(t, week_start_date=date(2024, 1, 8), title="Post v2"))

    loaded = task_store.get(t.id)
    assert loaded is not None
    assert loaded.title == "Post v2"
    assert loaded.week_start_date == MONDAY


def test_query_by_user_and_week(task_store: TaskStore) -> None:
    a = task_store.add_task(user_id="u1", title="A", week_start_date=MONDAY, now=NOW)
    b = task_store.add_task(
        user_id="u1", title="B", week_start_date=MONDAY, now=datetime(2024, 1, 2, 11, 0, tzinfo=UTC)
    )
    task_store.add_task(user_id="u1", title="C", week_start_date=date(2024, 1, 8), now=NOW)
    task_store.add_task(user_id="u2", title="D", week_start_date=MONDAY, now=NOW)

    week = task_store.query_by_user_and_week("u1", MONDAY)
    assert [t.id for t in week] == [a.id, b.id]


def test_list_by_status(task_store: TaskStore) -> None:
    a = task_store.add_task(user_id="u1", title="A", week_start_date=MONDAY, now=NOW)
    task_store.add_task(user_id="u1", title="B", week_start_date=MONDAY, now=NOW)
    task_store.upsert(replace(a, status=TaskStatus.STARTED, started_at=NOW))

    started = task_store.list_by_status("u1", TaskStatus.STARTED)
    assert [t.id for t in started] == [a.id]
    assert len(task_store.list_by_status("u1", TaskStatus.PENDING)) == 1


def test_activity_dates_are_distinct_and_filterable(task_store: TaskStore) -> None:
    d1 = datetime(2024, 1, 2, 9, 0, tzinfo=UTC)
    d2 = datetime(2024, 1, 3, 9, 0, tzinfo=UTC)
    for title, when, cat in [("A", d1, "linkedin"), ("B", d1, "email"), ("C", d2, "linkedin")]:
        t = task_store.add_task(user_id="u1", title=title, week_start_date=MONDAY, category=cat, now=NOW)
        task_store.upsert(complete(t, when))
    task_store.add_task(user_id="u1", title="open", week_start_date=MONDAY, now=NOW)

    assert task_store.list_activity_dates("u1") == {d1.date(), d2.date()}
    assert task_store.list_activity_dates("u1", "email") == {d1.date()}
    assert task_store.list_activity_dates("u2") == set()
    assert task_store.count_completed("u1") == 3
    assert task_store.count_completed("u2") == 0


def test_upsert_rejects_invalid_task(task_store: TaskStore) -> None:
    t = task_store.add_task(user_id="u1", title="A", week_start_date=MONDAY, now=NOW)
    t.status = TaskStatus.STARTED
    with pytest.raises(ValidationError):
        task_store.upsert(t)


def test_migration_adds_missing_columns(tmp_path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        """
        CREATE TABLE tasks (
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
    conn.execute(
        "INSERT INTO tasks(id, user_id, title, week_start_date, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
        ("old1", "u1", "Legacy task", "2024-01-01", NOW.timestamp(), NOW.timestamp()),
    )
    conn.commit()
    conn.close()

    store = TaskStore(db)
    loaded = store.get("old1")
    assert loaded is not None
    assert loaded.status is TaskStatus.PENDING
    assert loaded.metrics_tracked == {}
    assert loaded.result_notes == ""
