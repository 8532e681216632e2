# tests/test_task_models.py

from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from taskstreak.core.errors import InvalidTransition, ValidationError
from taskstreak.tasks.task_models import (
    Approach,
    Metric,
    MetricInput,
    Task,
    TaskAction,
    TaskPriority,
    TaskStatus,
    check_transition,
    normalize_metrics,
)

NOW = datetime(2024, 1, 2, 10, 0, tzinfo=UTC)
MONDAY = date(2024, 1, 1)


def make_task(**kw) -> Task:
    base = dict(id="t1", user_id="u1", title="Post on LinkedIn", week_start_date=MONDAY, created_at=NOW, updated_at=NOW)
    base.update(kw)
    return Task(**base)


def test_new_task_is_pending() -> None:
    t = make_task()
    assert t.status is TaskStatus.PENDING
    assert t.priority is TaskPriority.MEDIUM
    assert t.started_at is None
    assert not t.is_completed


def test_started_requires_started_at() -> None:
    with pytest.raises(ValidationError):
        make_task(status=TaskStatus.STARTED)


def test_pending_rejects_completion_fields() -> None:
    with pytest.raises(ValidationError):
        make_task(completed_at=NOW, completed_on=NOW.date(), actual_time_minutes=5)


def test_completed_requires_all_completion_fields() -> None:
    with pytest.raises(ValidationError):
        make_task(status=TaskStatus.COMPLETED, started_at=NOW, completed_at=NOW, actual_time_minutes=5)

    t = make_task(
        status=TaskStatus.COMPLETED,
        started_at=NOW,
        completed_at=NOW,
        completed_on=NOW.date(),
        actual_time_minutes=5,
    )
    assert t.is_completed


def test_actual_minutes_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        make_task(
            status=TaskStatus.COMPLETED,
            started_at=NOW,
            completed_at=NOW,
            completed_on=NOW.date(),
            actual_time_minutes=0,
        )


def test_week_start_must_be_monday() -> None:
    with pytest.raises(ValidationError):
        make_task(week_start_date=date(2024, 1, 3))


def test_transition_table() -> None:
    assert check_transition(TaskStatus.PENDING, TaskAction.START) is TaskStatus.STARTED
    assert check_transition(TaskStatus.STARTED, TaskAction.COMPLETE) is TaskStatus.COMPLETED
    assert check_transition(TaskStatus.COMPLETED, TaskAction.UNCOMPLETE) is TaskStatus.STARTED
    assert check_transition(TaskStatus.STARTED, TaskAction.CANCEL_START) is TaskStatus.PENDING


def test_start_on_completed_is_rejected() -> None:
    with pytest.raises(InvalidTransition) as ei:
        check_transition(TaskStatus.COMPLETED, TaskAction.START)
    assert ei.value.current == "completed"
    assert ei.value.requested == "started"


def test_cancel_on_pending_is_rejected() -> None:
    with pytest.raises(InvalidTransition):
        check_transition(TaskStatus.PENDING, TaskAction.CANCEL_START)


def test_priority_parse() -> None:
    assert TaskPriority.parse(None) is TaskPriority.MEDIUM
    assert TaskPriority.parse("") is TaskPriority.MEDIUM
    assert TaskPriority.parse(" HIGH ") is TaskPriority.HIGH
    with pytest.raises(ValidationError):
        TaskPriority.parse("urgent")


def test_status_from_db_falls_back_to_pending() -> None:
    assert TaskStatus.from_db("completed") is TaskStatus.COMPLETED
    assert TaskStatus.from_db(None) is TaskStatus.PENDING
    assert TaskStatus.from_db("weird") is TaskStatus.PENDING


def test_normalize_metrics_drops_empty_rows() -> None:
    out = normalize_metrics(
        [
            MetricInput("impressions", "1200"),
            MetricInput("", ""),
            MetricInput("clicks", "  "),
            MetricInput("ctr", "2.5", "%"),
        ]
    )
    assert out == {"impressions": Metric("1200"), "ctr": Metric("2.5", "%")}


def test_normalize_metrics_accepts_mapping() -> None:
    out = normalize_metrics({"likes": 40, "reach": {"value": "900", "unit": "people"}, "shares": None})
    assert out == {"likes": Metric("40"), "reach": Metric("900", "people")}


def test_normalize_metrics_rejects_value_without_name() -> None:
    with pytest.raises(ValidationError):
        normalize_metrics([MetricInput("  ", "12")])


def test_normalize_metrics_rejects_duplicates() -> None:
    with pytest.raises(ValidationError):
        normalize_metrics([MetricInput("likes", "1"), MetricInput("likes", "2")])


def test_approach_resolve() -> None:
    assert Approach(accepted=False, text="  my plan ").resolve() == "my plan"
    assert Approach(accepted=True, text="ignored", suggested="Do X").resolve() == "Do X"
    with pytest.raises(ValidationError):
        Approach(accepted=True).resolve()


def test_elapsed_and_estimate() -> None:
    t = make_task(status=TaskStatus.STARTED, started_at=NOW, estimated_time="1-2 hours")
    assert t.estimated_minutes == 120
    assert t.elapsed_minutes(datetime(2024, 1, 2, 10, 45, tzinfo=UTC)) == 45
    assert make_task().elapsed_minutes(NOW) is None
