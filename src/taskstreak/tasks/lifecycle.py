# src/taskstreak/tasks/lifecycle.py

"""
Task lifecycle controller.

Orchestrates start / complete / uncomplete / cancel-start transitions and keeps the
profile aggregate and per-platform streaks consistent with the task table. Weekly
plans from the optional planner become ordinary pending tasks.

Each mutating operation is applied as one unit: the task write and the streak writes
either all land or are all compensated (previous rows restored). A failed unit is
retried once; persistent failure surfaces as DependencyFailure.

Streaks and the completed-task total are always recomputed from the task table
(never incremented), so every call site agrees and retries are idempotent.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any

from ..core.clock import DayBoundary
from ..core.errors import (
    DependencyFailure,
    SuggestionUnavailable,
    TaskAlreadyCompleted,
    TaskNotFound,
    TaskStreakError,
    ValidationError,
)
from ..core.ports import Clock, ProfileRepo, SuggestionProvider, TaskRepo, WeekPlanner
from ..profiles.profile_models import PlatformStreak, ProfileAggregate
from ..streaks.calculator import compute_streak
from ..suggestions.approach import SuggestionContext
from .task_models import (
    Approach,
    MetricInput,
    Task,
    TaskAction,
    TaskPriority,
    TaskStatus,
    check_transition,
    normalize_metrics,
)
from .weeks import DAYS_PER_WEEK, format_week_range, resolve_week, week_days, week_end_for, week_start_for

logger = logging.getLogger(__name__)

Undo = Callable[[], None]


@dataclass(slots=True)
class WeekView:
    week_start: date
    tasks: list[Task]

    @property
    def week_end(self) -> date:
        return week_end_for(self.week_start)

    @property
    def label(self) -> str:
        return format_week_range(self.week_start)

    @property
    def total_count(self) -> int:
        return len(self.tasks)

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self.tasks if t.is_completed)

    @property
    def progress_percentage(self) -> float:
        if not self.tasks:
            return 0.0
        return self.completed_count / self.total_count * 100.0

    @property
    def total_estimated_minutes(self) -> int:
        return sum(t.estimated_minutes or 0 for t in self.tasks)

    def daily_completions(self) -> list[tuple[date, int]]:
        """Completed-task count for each day Monday..Sunday, by completion date."""
        counts = {d: 0 for d in week_days(self.week_start)}
        for t in self.tasks:
            if t.completed_on in counts:
                counts[t.completed_on] += 1
        return list(counts.items())


@dataclass(slots=True)
class WeekPlanResult:
    week_start: date
    tasks: list[Task] = field(default_factory=list)
    suggestions: dict[str, str] = field(default_factory=dict)
    insights: dict[str, str] = field(default_factory=dict)
    fallback: bool = False


@dataclass(slots=True)
class StreakSummary:
    user_id: str
    current_streak: int
    best_streak: int
    last_activity_date: date | None
    total_tasks_completed: int
    platforms: list[PlatformStreak] = field(default_factory=list)


class TaskLifecycleController:
    def __init__(
        self,
        tasks: TaskRepo,
        profiles: ProfileRepo,
        *,
        clock: Clock,
        day_boundary: DayBoundary | None = None,
        suggestions: SuggestionProvider | None = None,
        planner: WeekPlanner | None = None,
        max_write_attempts: int = 2,
    ) -> None:
        self.tasks = tasks
        self.profiles = profiles
        self.clock = clock
        self.day_boundary = day_boundary or DayBoundary("UTC")
        self.suggestions = suggestions
        self.planner = planner
        self.max_write_attempts = max(1, int(max_write_attempts))

    # ---- helpers ----

    def _now(self) -> datetime:
        return self.clock.now()

    def _today(self) -> date:
        return self.day_boundary.today(self.clock)

    def get_task(self, task_id: str) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    # ---- task creation / onboarding ----

    def onboard_user(self, user_id: str) -> ProfileAggregate:
        return self.profiles.ensure_profile(user_id)

    def create_task(
        self,
        user_id: str,
        title: str,
        *,
        description: str = "",
        category: str = "",
        priority: TaskPriority | str | None = None,
        estimated_time: str = "",
        week_start_date: date | None = None,
        week_offset: int = 0,
    ) -> Task:
        """Create a pending task; its week partition is fixed here and never recomputed."""
        week_start = (
            week_start_for(week_start_date)
            if week_start_date is not None
            else resolve_week(week_offset, self._today())
        )
        task = self.tasks.add_task(
            user_id=user_id,
            title=title,
            week_start_date=week_start,
            description=description,
            category=category,
            priority=priority,
            estimated_time=estimated_time,
            now=self._now(),
        )
        logger.info("Task created id=%s user=%s week=%s", task.id, user_id, week_start)
        return task

    # ---- suggestions (read-only, never blocks a transition) ----

    def fetch_suggestion(
        self,
        task_id: str,
        context: SuggestionContext | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> str | None:
        task = self.get_task(task_id)
        if self.suggestions is None:
            logger.info("No suggestion provider configured task_id=%s", task_id)
            return None
        try:
            return self.suggestions.suggest_approach(task, context, cancel=cancel)
        except SuggestionUnavailable as e:
            logger.warning("No suggestion available task_id=%s: %s", task_id, e)
            return None

    def generate_week_plan(
        self,
        user_id: str,
        offset: int = 1,
        context: SuggestionContext | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> WeekPlanResult:
        """
        Ask the planner for a task list for the week at `offset`, based on the week before it.

        Planner failures propagate as SuggestionUnavailable and nothing is created.
        """
        if self.planner is None:
            raise SuggestionUnavailable("No week planner configured")

        week_start = resolve_week(offset, self._today())
        previous = week_start - timedelta(days=DAYS_PER_WEEK)
        past_tasks = self.tasks.query_by_user_and_week(user_id, previous)

        plan = self.planner.plan_week(past_tasks, week_start, context, cancel=cancel)

        result = WeekPlanResult(week_start=week_start, insights=dict(plan.insights), fallback=plan.fallback)
        for planned in plan.tasks:
            task = self.create_task(
                user_id,
                planned.title,
                description=planned.description,
                category=planned.category,
                priority=planned.priority,
                estimated_time=planned.estimated_time,
                week_offset=offset,
            )
            result.tasks.append(task)
            if planned.ai_suggestion:
                result.suggestions[task.id] = planned.ai_suggestion

        logger.info(
            "Week plan generated user=%s week=%s tasks=%d (from %d past tasks, fallback=%s)",
            user_id,
            week_start,
            len(result.tasks),
            len(past_tasks),
            plan.fallback,
        )
        return result

    # ---- lifecycle operations ----

    def start_task(self, task_id: str, approach: Approach) -> Task:
        task = self.get_task(task_id)
        check_transition(task.status, TaskAction.START)

        now = self._now()
        suggested = (approach.suggested or "").strip() or None
        started = replace(
            task,
            status=TaskStatus.STARTED,
            started_at=now,
            updated_at=now,
            suggested_approach=suggested,
            accepted_approach=approach.accepted,
            user_approach=approach.resolve(),
        )
        self._commit(task, started)
        logger.info("Task started id=%s accepted_suggestion=%s", task_id, approach.accepted)
        return started

    def complete_task(
        self,
        task_id: str,
        notes: str = "",
        metrics: Iterable[MetricInput] | Mapping[str, Any] | None = None,
        actual_time_minutes: int | None = None,
    ) -> Task:
        task = self.get_task(task_id)
        if task.status is TaskStatus.COMPLETED:
            raise TaskAlreadyCompleted(task_id)

        if actual_time_minutes is not None and (
            isinstance(actual_time_minutes, bool)
            or not isinstance(actual_time_minutes, int)
            or actual_time_minutes < 1
        ):
            raise ValidationError(f"actual_time_minutes must be an integer >= 1, got {actual_time_minutes!r}")
        metrics_tracked = normalize_metrics(metrics)

        now = self._now()
        if task.status is TaskStatus.PENDING:
            # Direct completion is normalized to "start now, complete now".
            logger.info("Task id=%s completed without start; starting it now", task_id)
        else:
            check_transition(task.status, TaskAction.COMPLETE)
        started_at = task.started_at or now

        if actual_time_minutes is None:
            elapsed = (now - started_at).total_seconds() / 60.0
            actual_time_minutes = max(1, round(elapsed))

        completed = replace(
            task,
            status=TaskStatus.COMPLETED,
            started_at=started_at,
            completed_at=now,
            completed_on=self.day_boundary.date_of(now),
            actual_time_minutes=actual_time_minutes,
            result_notes=(notes or "").strip(),
            metrics_tracked=metrics_tracked,
            updated_at=now,
        )
        self._commit(task, completed, streaks=True)
        logger.info(
            "Task completed id=%s on=%s minutes=%s metrics=%d",
            task_id,
            completed.completed_on,
            actual_time_minutes,
            len(metrics_tracked),
        )
        return completed

    def uncomplete_task(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        check_transition(task.status, TaskAction.UNCOMPLETE)

        now = self._now()
        reverted = replace(
            task,
            status=TaskStatus.STARTED,
            completed_at=None,
            completed_on=None,
            actual_time_minutes=None,
            updated_at=now,
        )
        self._commit(task, reverted, streaks=True)
        logger.info("Task uncompleted id=%s (was completed on %s)", task_id, task.completed_on)
        return reverted

    def cancel_start(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        check_transition(task.status, TaskAction.CANCEL_START)

        pending = replace(
            task,
            status=TaskStatus.PENDING,
            started_at=None,
            suggested_approach=None,
            accepted_approach=None,
            user_approach=None,
            updated_at=self._now(),
        )
        self._commit(task, pending)
        logger.info("Task start cancelled id=%s", task_id)
        return pending

    # ---- read models ----

    def get_week_tasks(self, user_id: str, offset: int = 0) -> WeekView:
        week_start = resolve_week(offset, self._today())
        return WeekView(week_start=week_start, tasks=self.tasks.query_by_user_and_week(user_id, week_start))

    def list_started_tasks(self, user_id: str) -> list[Task]:
        return self.tasks.list_by_status(user_id, TaskStatus.STARTED)

    def get_streak_summary(self, user_id: str) -> StreakSummary:
        """Streaks recomputed at read time, so a missed day shows up without any background job."""
        today = self._today()
        daily = compute_streak(self.tasks.list_activity_dates(user_id), today)

        platforms: list[PlatformStreak] = []
        for stored in self.profiles.list_platform_streaks(user_id):
            res = compute_streak(self.tasks.list_activity_dates(user_id, stored.platform), today)
            platforms.append(
                PlatformStreak(
                    user_id=user_id,
                    platform=stored.platform,
                    current_streak=res.current,
                    best_streak=res.best,
                    last_activity_date=res.last_activity_date,
                )
            )
        platforms.sort(key=lambda p: (-p.current_streak, p.platform))

        return StreakSummary(
            user_id=user_id,
            current_streak=daily.current,
            best_streak=daily.best,
            last_activity_date=daily.last_activity_date,
            total_tasks_completed=self.tasks.count_completed(user_id),
            platforms=platforms,
        )

    # ---- atomic paired writes ----

    def _snapshot(self, task: Task) -> tuple[ProfileAggregate, PlatformStreak | None]:
        profile_before = self.profiles.ensure_profile(task.user_id)
        platform_before = None
        if task.category:
            platform_before = self.profiles.get_platform_streak(task.user_id, task.category)
        return profile_before, platform_before

    def _commit(self, before: Task, after: Task, *, streaks: bool = False) -> None:
        """
        Write `after` (and, with streaks=True, the streak aggregates) as one unit.

        Every write registers its compensation before it runs; on failure the
        compensations run in reverse order and the unit is retried. The streak
        snapshot is taken once, so every attempt restores the same prior state.
        If a compensation fails the stores may disagree, and retrying on top of
        that is unsafe: DependencyFailure(partial=True) is raised instead.
        """
        last_error: Exception | None = None
        snapshot: tuple[ProfileAggregate, PlatformStreak | None] | None = None

        for attempt in range(1, self.max_write_attempts + 1):
            undo: list[Undo] = []
            try:
                if streaks and snapshot is None:
                    snapshot = self._snapshot(after)

                undo.append(lambda: self.tasks.upsert(before))
                self.tasks.upsert(after)

                if snapshot is not None:
                    self._write_streaks(after, *snapshot, undo)
                return
            except TaskStreakError:
                self._rollback(undo, after.id)
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    "Write failed task_id=%s attempt=%d/%d (%s); rolling back",
                    after.id,
                    attempt,
                    self.max_write_attempts,
                    e.__class__.__name__,
                )
                if not self._rollback(undo, after.id):
                    raise DependencyFailure(
                        f"Could not persist task {after.id}, and the rollback did not complete; "
                        "streak totals may be stale until the next successful update",
                        partial=True,
                    ) from e

        raise DependencyFailure(
            f"Could not persist task {after.id} after {self.max_write_attempts} attempt(s); "
            "no changes were applied"
        ) from last_error

    def _write_streaks(
        self,
        task: Task,
        profile_before: ProfileAggregate,
        platform_before: PlatformStreak | None,
        undo: list[Undo],
    ) -> None:
        # Runs after the task row is written, so the task table already reflects it.
        today = self._today()

        daily = compute_streak(self.tasks.list_activity_dates(task.user_id), today)
        aggregate = ProfileAggregate(
            user_id=task.user_id,
            current_streak=daily.current,
            best_streak=daily.best,
            last_activity_date=daily.last_activity_date,
            total_tasks_completed=self.tasks.count_completed(task.user_id),
        )
        undo.append(lambda: self.profiles.update_aggregate(profile_before))
        self.profiles.update_aggregate(aggregate)

        if not task.category:
            return

        platform_dates = self.tasks.list_activity_dates(task.user_id, task.category)
        if platform_before is None and not platform_dates:
            return

        res = compute_streak(platform_dates, today)
        platform = PlatformStreak(
            user_id=task.user_id,
            platform=task.category,
            current_streak=res.current,
            best_streak=res.best,
            last_activity_date=res.last_activity_date,
        )
        if platform_before is None:
            undo.append(lambda: self.profiles.delete_platform_streak(task.user_id, task.category))
        else:
            undo.append(lambda: self.profiles.upsert_platform_streak(platform_before))
        self.profiles.upsert_platform_streak(platform)

    @staticmethod
    def _rollback(undo: list[Undo], task_id: str) -> bool:
        """Run compensations newest first; False if any of them failed."""
        clean = True
        for step in reversed(undo):
            try:
                step()
            except Exception:
                clean = False
                logger.exception("Rollback step failed task_id=%s", task_id)
        return clean
