# src/taskstreak/core/errors.py

"""
Error taxonomy for the task lifecycle & streak engine.

Validation and transition errors indicate caller misuse and are never retried.
DependencyFailure is raised after the paired task/streak writes were rolled back, or with
partial=True when a rollback step itself failed and stored aggregates may be stale.
SuggestionUnavailable is non-fatal: the controller logs it and reports "no suggestion".
"""

from __future__ import annotations


class TaskStreakError(Exception):
    """Base class for all domain errors."""


class TaskNotFound(TaskStreakError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class InvalidTransition(TaskStreakError):
    def __init__(self, current: str, requested: str, message: str | None = None) -> None:
        super().__init__(message or f"Invalid transition: {current} -> {requested}")
        self.current = current
        self.requested = requested


class TaskAlreadyCompleted(InvalidTransition):
    def __init__(self, task_id: str) -> None:
        super().__init__("completed", "completed", f"Task already completed: {task_id}")
        self.task_id = task_id


class ValidationError(TaskStreakError):
    pass


class DependencyFailure(TaskStreakError):
    def __init__(self, message: str, *, partial: bool = False) -> None:
        super().__init__(message)
        self.partial = partial


class SuggestionUnavailable(TaskStreakError):
    pass
