# src/taskstreak/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.errors import SuggestionUnavailable, TaskStreakError, ValidationError
from ..core.state import AppState
from ..tasks.motivation import motivational_message, streak_message
from ..tasks.task_models import Approach, MetricInput, Task, TaskStatus
from ..tasks.weeks import format_week_range, parse_week_start

CommandEmitter = Callable[[str], None]
CommandHandler3 = Callable[[AppState, list[str], str], str]
CommandHandler4 = Callable[[AppState, list[str], str, CommandEmitter | None], str]
CommandHandler = CommandHandler3 | CommandHandler4

logger = logging.getLogger(__name__)

_STATUS_MARK = {
    TaskStatus.PENDING: "[ ]",
    TaskStatus.STARTED: "[>]",
    TaskStatus.COMPLETED: "[x]",
}


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /week, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        user_id: str | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Domain errors become user-facing messages.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        uid = user_id or state.user_id
        nparams = len(inspect.signature(handler).parameters)

        try:
            if nparams >= 4:
                h4 = cast(CommandHandler4, handler)
                return h4(state, args, uid, emit)
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, uid)
        except TaskStreakError as e:
            logger.info("/%s rejected: %s", name, e)
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----

def _resolve_task_id(state: AppState, raw: str) -> str:
    """Accept '#2' / '2' (position in the last listing) or a full task id."""
    ref = raw.lstrip("#")
    if ref.isdigit() and state.last_listing:
        idx = int(ref)
        if not 1 <= idx <= len(state.last_listing):
            raise ValidationError(f"No task #{idx} in the last listing.")
        return state.last_listing[idx - 1]
    return raw


def _require_task_arg(state: AppState, args: list[str], usage: str) -> str:
    if not args:
        raise ValidationError(f"Usage: {usage}")
    return _resolve_task_id(state, args[0])


def _format_task(i: int, task: Task) -> str:
    meta = ", ".join(p for p in (task.category, task.priority.value, task.estimated_time) if p)
    line = f"{i}. {_STATUS_MARK[task.status]} {task.title}"
    if meta:
        line += f" ({meta})"
    if task.actual_time_minutes is not None:
        line += f" - done in {task.actual_time_minutes} min"
    return line


# ---- handlers ----

def cmd_help(state: AppState, args: list[str], user_id: str) -> str:
    return registry.build_help()


def cmd_week(state: AppState, args: list[str], user_id: str) -> str:
    """
    /week       -> this week's tasks
    /week -1    -> last week, /week 1 -> next week
    """
    offset = 0
    if args:
        try:
            offset = int(args[0])
        except ValueError:
            return "Usage: /week [offset], e.g. /week -1"

    view = state.controller.get_week_tasks(user_id, offset)
    state.last_listing = [t.id for t in view.tasks]

    header = (
        f"Week of {view.label} - {view.completed_count} of {view.total_count} tasks completed "
        f"({view.progress_percentage:.0f}%)"
    )
    if not view.tasks:
        return header + "\n  No tasks for this week. Add one with /add or generate a plan with /plan."
    lines = [header]
    lines += [f"  {_format_task(i, t)}" for i, t in enumerate(view.tasks, start=1)]
    if view.total_estimated_minutes:
        lines.append(f"  Estimated total: {view.total_estimated_minutes} min")
    if view.completed_count:
        per_day = ", ".join(f"{day:%a} {n}" for day, n in view.daily_completions())
        lines.append(f"  Done per day: {per_day}")

    if offset == 0:
        today = state.controller.day_boundary.today(state.controller.clock)
        streak = state.controller.get_streak_summary(user_id).current_streak
        message = motivational_message(
            today,
            view.progress_percentage,
            view.completed_count,
            view.total_count,
            streak,
        )
        lines += ["", message.render()]
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str], user_id: str) -> str:
    """/add title | category | priority | estimate | description | week (YYYY-MM-DD)"""
    raw = " ".join(args).strip()
    if not raw:
        return "Usage: /add <title> [| category | priority | estimate | description | week YYYY-MM-DD]"
    fields = [f.strip() for f in raw.split("|")] + [""] * 5
    title, category, priority, estimate, description, week = fields[:6]

    task = state.controller.create_task(
        user_id,
        title,
        category=category,
        priority=priority or None,
        estimated_time=estimate,
        description=description,
        week_start_date=parse_week_start(week) if week else None,
    )
    state.last_listing.append(task.id)
    return f"Task added to the week of {task.week_start_date}: {task.title} (#{len(state.last_listing)})"


def cmd_suggest(state: AppState, args: list[str], user_id: str, emit: CommandEmitter | None = None) -> str:
    task_id = _require_task_arg(state, args, "/suggest <task>")
    if emit:
        emit("Generating approach... (you can still /start with your own text)")
    text = state.controller.fetch_suggestion(task_id)
    if text is None:
        return "No suggestion available right now. Start with your own approach: /start <task> <text>"
    state.pending_suggestions[task_id] = text
    return f"Suggested approach:\n{text}\n\nUse /accept to start with it, or /start <task> <your text>."


def cmd_plan(state: AppState, args: list[str], user_id: str, emit: CommandEmitter | None = None) -> str:
    """
    /plan       -> generate next week's tasks from this week's results
    /plan 0     -> fill the current week instead
    """
    offset = 1
    if args:
        try:
            offset = int(args[0])
        except ValueError:
            return "Usage: /plan [offset], e.g. /plan 1"

    if emit:
        emit("Generating a weekly plan from last week's results...")
    try:
        result = state.controller.generate_week_plan(user_id, offset)
    except SuggestionUnavailable as e:
        return f"Could not generate a plan right now ({e}). Add tasks yourself with /add."

    state.last_listing = [t.id for t in result.tasks]
    state.pending_suggestions.update(result.suggestions)

    lines = [f"Plan for the week of {format_week_range(result.week_start)}: {len(result.tasks)} task(s) added"]
    if result.fallback:
        lines.append("  (the AI answer could not be used; here is a starter plan)")
    lines += [f"  {_format_task(i, t)}" for i, t in enumerate(result.tasks, start=1)]
    for key, label in (("focusAreas", "Focus"), ("suggestedStrategy", "Strategy")):
        if result.insights.get(key):
            lines.append(f"  {label}: {result.insights[key]}")
    if result.suggestions:
        lines.append("Each task has a suggested approach: /accept <#> to start with it.")
    return "\n".join(lines)


def cmd_start(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _require_task_arg(state, args, "/start <task> [your approach]")
    approach = Approach(
        accepted=False,
        text=" ".join(args[1:]),
        suggested=state.pending_suggestions.get(task_id),
    )
    task = state.controller.start_task(task_id, approach)
    state.pending_suggestions.pop(task_id, None)
    return f"Task started: {task.title}. Good luck!"


def cmd_accept(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _require_task_arg(state, args, "/accept <task>")
    suggested = state.pending_suggestions.get(task_id)
    if not suggested:
        return "No suggestion to accept. Run /suggest <task> first."
    task = state.controller.start_task(task_id, Approach(accepted=True, suggested=suggested))
    state.pending_suggestions.pop(task_id, None)
    return f"Task started with the suggested approach: {task.title}."


def cmd_done(state: AppState, args: list[str], user_id: str) -> str:
    """
    /done <task> [minutes=N] [metric=value[:unit] ...] [notes...]
    """
    task_id = _require_task_arg(state, args, "/done <task> [minutes=N] [name=value[:unit]] [notes]")

    minutes: int | None = None
    metrics: list[MetricInput] = []
    notes: list[str] = []
    for token in args[1:]:
        key, sep, value = token.partition("=")
        if not sep:
            notes.append(token)
            continue
        if key.lower() in ("minutes", "min"):
            try:
                minutes = int(value)
            except ValueError:
                raise ValidationError(f"minutes must be a whole number, got {value!r}") from None
            continue
        val, _, unit = value.partition(":")
        metrics.append(MetricInput(name=key.replace("_", " "), value=val, unit=unit))

    task = state.controller.complete_task(
        task_id,
        notes=" ".join(notes),
        metrics=metrics,
        actual_time_minutes=minutes,
    )
    summary = state.controller.get_streak_summary(user_id)
    return (
        f"Task completed: {task.title} ({task.actual_time_minutes} min). "
        f"Streak: {summary.current_streak} day(s)."
    )


def cmd_undo(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _require_task_arg(state, args, "/undo <task>")
    task = state.controller.uncomplete_task(task_id)
    return f"Task marked as not completed: {task.title}."


def cmd_cancel(state: AppState, args: list[str], user_id: str) -> str:
    task_id = _require_task_arg(state, args, "/cancel <task>")
    task = state.controller.cancel_start(task_id)
    return f"Start cancelled: {task.title} is pending again."


def cmd_started(state: AppState, args: list[str], user_id: str) -> str:
    tasks = state.controller.list_started_tasks(user_id)
    state.last_listing = [t.id for t in tasks]
    if not tasks:
        return "No tasks in progress."
    now = state.controller.clock.now()
    lines = ["In progress:"]
    for i, t in enumerate(tasks, start=1):
        lines.append(f"  {i}. {t.title} - {t.elapsed_minutes(now)} min elapsed")
    return "\n".join(lines)


def cmd_streak(state: AppState, args: list[str], user_id: str) -> str:
    s = state.controller.get_streak_summary(user_id)
    lines = [
        "Streaks:",
        f"  Current: {s.current_streak} day(s)",
        f"  Best: {s.best_streak} day(s)",
        f"  Last activity: {s.last_activity_date or '-'}",
        f"  Tasks completed: {s.total_tasks_completed}",
    ]
    for p in s.platforms:
        lines.append(f"  {p.platform}: {p.current_streak} (best {p.best_streak})")
    lines.append(streak_message(s.current_streak))
    return "\n".join(lines)


def cmd_status(state: AppState, args: list[str], user_id: str) -> str:
    settings = state.settings
    models = ", ".join(list(getattr(settings, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  User: {user_id}\n"
        f"  Day boundary timezone: {state.controller.day_boundary.timezone_name}\n"
        f"  Suggestions: {'ON' if state.controller.suggestions is not None else 'OFF'}\n"
        f"  Weekly plans: {'ON' if state.controller.planner is not None else 'OFF'}\n"
        f"  Models (priority -> fallback): {models}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("week", cmd_week, help_text="List tasks: /week [offset] (0 = this week).")
registry.register("add", cmd_add, help_text="Add a task: /add title | category | priority | estimate | description | week.")
registry.register("suggest", cmd_suggest, help_text="Get an AI approach for a task: /suggest <task>.")
registry.register("plan", cmd_plan, help_text="Generate a weekly plan with AI: /plan [offset] (1 = next week).")
registry.register("start", cmd_start, help_text="Start a task with your own approach: /start <task> <text>.")
registry.register("accept", cmd_accept, help_text="Start a task with the suggested approach: /accept <task>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <task> [minutes=N] [name=value] [notes].")
registry.register("undo", cmd_undo, help_text="Mark a completed task as not completed: /undo <task>.")
registry.register("cancel", cmd_cancel, help_text="Cancel a started task: /cancel <task>.")
registry.register("started", cmd_started, help_text="List tasks in progress.")
registry.register("streak", cmd_streak, help_text="Show daily and per-platform streaks.")
registry.register("status", cmd_status, help_text="Show current settings.")
