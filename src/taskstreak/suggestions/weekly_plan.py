# src/taskstreak/suggestions/weekly_plan.py

from __future__ import annotations

"""
AI weekly plan generation.

The previous week's tasks (outcome, approach and notes) are summarized into a
prompt; the model answers with a JSON task list for the target week. Like
approach suggestions this is best-effort: LLM failures surface as
SuggestionUnavailable, while malformed JSON falls back to a one-task starter plan.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..core.errors import SuggestionUnavailable, ValidationError
from ..core.ports import LLMClient
from ..tasks.task_models import Task, TaskPriority
from .approach import SuggestionContext, collect_llm_text

logger = logging.getLogger(__name__)

PLAN_SYSTEM_PROMPT = (
    "You are an expert marketing assistant who creates personalized weekly plans. "
    "Always respond with valid JSON only."
)

FALLBACK_WEEK_PLAN: dict[str, Any] = {
    "weeklyTasks": [
        {
            "title": "Review and improve your website's homepage",
            "description": "Based on your goals, focus on clarifying your value proposition",
            "category": "Website",
            "priority": "high",
            "estimatedTime": "1 hour",
            "aiSuggestion": "Start with the most visible elements that visitors see first",
        }
    ],
    "weeklyInsights": {
        "performanceAnalysis": "Continue building consistent marketing habits",
        "focusAreas": "Website optimization and content creation",
        "suggestedStrategy": "Focus on one channel at a time for better results",
    },
}


@dataclass(slots=True, frozen=True)
class PlannedTask:
    title: str
    description: str = ""
    category: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_time: str = ""
    ai_suggestion: str = ""


@dataclass(slots=True)
class WeekPlan:
    tasks: list[PlannedTask]
    insights: dict[str, str] = field(default_factory=dict)
    fallback: bool = False


def _or_unspecified(value: str) -> str:
    return value.strip() or "Not specified"


def _describe_past_task(task: Task) -> list[str]:
    return [
        f"Task: {task.title}",
        f"Category: {task.category or 'Not specified'}",
        f"Priority: {task.priority.value}",
        f"Completed: {'Yes' if task.is_completed else 'No'}",
        f"User Approach: {task.user_approach or 'Not recorded'}",
        f"Results & Notes: {task.result_notes or 'Not recorded'}",
    ]


def build_week_plan_prompt(
    past_tasks: list[Task],
    week_start: date,
    context: SuggestionContext | None = None,
) -> str:
    lines = [
        "You are a marketing assistant helping a user plan their next week "
        "based on their past performance and goals.",
        f"The plan is for the week starting {week_start.isoformat()}.",
        "",
        "=== USER CONTEXT ===",
    ]
    if context is None:
        lines.append("No profile information available")
    else:
        lines += [
            f"Goal: {_or_unspecified(context.marketing_goal)}",
            f"Business: {_or_unspecified(context.business_name)}",
            f"Industry: {_or_unspecified(context.industry)}",
            f"Target Audience: {_or_unspecified(context.target_audience)}",
        ]

    lines += ["", "=== PAST WEEK'S PERFORMANCE ==="]
    if past_tasks:
        for task in past_tasks:
            lines += _describe_past_task(task)
            lines.append("")
    else:
        lines.append("No past tasks available")

    lines += ["", "=== WEBSITE ANALYSIS CONTEXT ==="]
    if context is not None and context.website_summary.strip():
        if context.website_url.strip():
            lines.append(f"Website: {context.website_url.strip()}")
        lines.append(f"Analysis: {context.website_summary.strip()}")
    else:
        lines.append("No specific website analysis provided")

    lines += [
        "",
        "=== INSTRUCTIONS ===",
        "1. Analyze what worked well and what didn't based on completed vs incomplete tasks.",
        "2. Review the user's notes and results to understand their strengths and challenges.",
        "3. Generate 5-7 strategic tasks for next week that build on successful patterns,",
        "   address incomplete areas and vary in difficulty and time commitment.",
        "",
        "Respond with JSON only:",
        '{"weeklyTasks": [{"title": "...", "description": "...", "category": "SEO/Social/Email/Content/...",',
        '  "priority": "high/medium/low", "estimatedTime": "15 minutes to 3 hours", "aiSuggestion": "..."}],',
        ' "weeklyInsights": {"performanceAnalysis": "...", "focusAreas": "...", "suggestedStrategy": "..."}}',
    ]
    return "\n".join(lines)


def _text(raw: Any) -> str:
    return raw.strip() if isinstance(raw, str) else ""


def _priority(raw: Any) -> TaskPriority:
    try:
        return TaskPriority.parse(raw if isinstance(raw, str) else None)
    except ValidationError:
        return TaskPriority.MEDIUM


def _plan_from_dict(data: dict[str, Any], *, fallback: bool = False) -> WeekPlan:
    tasks: list[PlannedTask] = []
    for item in data.get("weeklyTasks") or []:
        if not isinstance(item, dict):
            continue
        title = _text(item.get("title"))
        if not title:
            continue
        tasks.append(
            PlannedTask(
                title=title,
                description=_text(item.get("description")),
                category=_text(item.get("category")),
                priority=_priority(item.get("priority")),
                estimated_time=_text(item.get("estimatedTime")),
                ai_suggestion=_text(item.get("aiSuggestion")),
            )
        )

    raw_insights = data.get("weeklyInsights")
    insights = (
        {k: v.strip() for k, v in raw_insights.items() if isinstance(v, str) and v.strip()}
        if isinstance(raw_insights, dict)
        else {}
    )
    return WeekPlan(tasks=tasks, insights=insights, fallback=fallback)


def fallback_week_plan() -> WeekPlan:
    return _plan_from_dict(FALLBACK_WEEK_PLAN, fallback=True)


def parse_week_plan(text: str) -> WeekPlan:
    """
    Parse the model's JSON answer.

    Markdown fences and chatter around the object are ignored. Anything that does
    not yield at least one titled task falls back to the starter plan.
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        logger.info("Week plan: no JSON object in model output; using fallback plan")
        return fallback_week_plan()

    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        logger.info("Week plan: invalid JSON in model output; using fallback plan")
        return fallback_week_plan()

    if not isinstance(data, dict):
        return fallback_week_plan()

    plan = _plan_from_dict(data)
    if not plan.tasks:
        logger.info("Week plan: model returned no usable tasks; using fallback plan")
        return fallback_week_plan()
    return plan


class LLMWeekPlanner:
    def __init__(
        self,
        llm: LLMClient,
        *,
        timeout_seconds: float = 90.0,
        max_chars: int = 12000,
        max_tasks: int = 7,
    ) -> None:
        self._llm = llm
        self._timeout = float(timeout_seconds)
        self._max_chars = int(max_chars)
        self._max_tasks = max(1, int(max_tasks))

    def plan_week(
        self,
        past_tasks: list[Task],
        week_start: date,
        context: SuggestionContext | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> WeekPlan:
        text = collect_llm_text(
            self._llm,
            build_week_plan_prompt(past_tasks, week_start, context),
            PLAN_SYSTEM_PROMPT,
            timeout_seconds=self._timeout,
            max_chars=self._max_chars,
            cancel=cancel,
        )
        if not text:
            raise SuggestionUnavailable("No weekly plan generated")

        plan = parse_week_plan(text)
        plan.tasks = plan.tasks[: self._max_tasks]
        logger.debug("Week plan generated week=%s tasks=%d fallback=%s", week_start, len(plan.tasks), plan.fallback)
        return plan
