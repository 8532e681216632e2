# src/taskstreak/tasks/task_models.py

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from ..core.errors import InvalidTransition, ValidationError
from .duration import parse_duration_minutes


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    pending -> started -> completed
    completed -> started   (uncomplete)
    started -> pending     (cancel start)
    """

    PENDING = "pending"
    STARTED = "started"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: str | TaskPriority | None) -> TaskPriority:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown priority: {raw!r} (expected low|medium|high)") from None


class TaskAction(StrEnum):
    START = "start"
    COMPLETE = "complete"
    UNCOMPLETE = "uncomplete"
    CANCEL_START = "cancel_start"


# action -> (required current status, resulting status)
TRANSITIONS: dict[TaskAction, tuple[TaskStatus, TaskStatus]] = {
    TaskAction.START: (TaskStatus.PENDING, TaskStatus.STARTED),
    TaskAction.COMPLETE: (TaskStatus.STARTED, TaskStatus.COMPLETED),
    TaskAction.UNCOMPLETE: (TaskStatus.COMPLETED, TaskStatus.STARTED),
    TaskAction.CANCEL_START: (TaskStatus.STARTED, TaskStatus.PENDING),
}


def check_transition(current: TaskStatus, action: TaskAction) -> TaskStatus:
    """Return the target status, or raise InvalidTransition naming current -> target."""
    source, target = TRANSITIONS[action]
    if current is not source:
        raise InvalidTransition(current.value, target.value)
    return target


@dataclass(slots=True, frozen=True)
class Metric:
    value: str
    unit: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"value": self.value, "unit": self.unit}


@dataclass(slots=True, frozen=True)
class MetricInput:
    """One row of the outcome form: empty rows are dropped on completion."""

    name: str
    value: str
    unit: str = ""


def normalize_metrics(
    metrics: Iterable[MetricInput] | Mapping[str, Any] | None,
) -> dict[str, Metric]:
    """
    Keep only entries where both name and value are non-empty.

    A value without a name, or the same name twice, is rejected.
    """
    if not metrics:
        return {}

    rows: list[MetricInput] = []
    if isinstance(metrics, Mapping):
        for name, raw in metrics.items():
            if isinstance(raw, Metric):
                rows.append(MetricInput(name=str(name), value=raw.value, unit=raw.unit))
            elif isinstance(raw, Mapping):
                rows.append(
                    MetricInput(
                        name=str(name),
                        value=str(raw.get("value", "") or ""),
                        unit=str(raw.get("unit", "") or ""),
                    )
                )
            else:
                rows.append(MetricInput(name=str(name), value="" if raw is None else str(raw)))
    else:
        rows = list(metrics)

    out: dict[str, Metric] = {}
    for row in rows:
        name = (row.name or "").strip()
        value = (row.value or "").strip()
        if not value:
            continue
        if not name:
            raise ValidationError(f"Metric value {value!r} has no name")
        if name in out:
            raise ValidationError(f"Duplicate metric name: {name!r}")
        out[name] = Metric(value=value, unit=(row.unit or "").strip())
    return out


@dataclass(slots=True, frozen=True)
class Approach:
    """
    How the user intends to do a task.

    accepted=True means the suggestion is adopted verbatim (text is ignored);
    otherwise text is the user's own approach.
    """

    accepted: bool
    text: str = ""
    suggested: str | None = None

    def resolve(self) -> str:
        if self.accepted:
            if not self.suggested or not self.suggested.strip():
                raise ValidationError("Cannot accept a suggestion that was never generated")
            return self.suggested.strip()
        return (self.text or "").strip()


@dataclass(slots=True)
class Task:
    id: str
    user_id: str
    title: str
    week_start_date: date
    created_at: datetime
    updated_at: datetime

    status: TaskStatus = TaskStatus.PENDING
    description: str = ""
    category: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_time: str = ""

    started_at: datetime | None = None
    completed_at: datetime | None = None
    completed_on: date | None = None
    actual_time_minutes: int | None = None

    suggested_approach: str | None = None
    accepted_approach: bool | None = None
    user_approach: str | None = None

    result_notes: str = ""
    metrics_tracked: dict[str, Metric] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Reject field combinations that do not match the status."""
        started = self.status in (TaskStatus.STARTED, TaskStatus.COMPLETED)
        completed = self.status is TaskStatus.COMPLETED

        if (self.started_at is not None) != started:
            raise ValidationError(
                f"Task {self.id}: started_at must be set iff status is started/completed "
                f"(status={self.status.value})"
            )
        if (self.completed_at is not None) != completed or (self.completed_on is not None) != completed:
            raise ValidationError(
                f"Task {self.id}: completed_at/completed_on must be set iff status is completed "
                f"(status={self.status.value})"
            )
        if (self.actual_time_minutes is not None) != completed:
            raise ValidationError(
                f"Task {self.id}: actual_time_minutes must be set iff status is completed"
            )
        if self.actual_time_minutes is not None and self.actual_time_minutes < 1:
            raise ValidationError(f"Task {self.id}: actual_time_minutes must be >= 1")
        if self.week_start_date.weekday() != 0:
            raise ValidationError(
                f"Task {self.id}: week_start_date {self.week_start_date} is not a Monday"
            )

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED

    @property
    def estimated_minutes(self) -> int | None:
        return parse_duration_minutes(self.estimated_time)

    def elapsed_minutes(self, now: datetime) -> int | None:
        """Minutes since start (None when not started)."""
        if self.started_at is None:
            return None
        end = self.completed_at or now
        return max(0, int((end - self.started_at).total_seconds() // 60))
