# src/taskstreak/suggestions/approach.py

from __future__ import annotations

"""
AI approach suggestions for a task.

Generating a suggestion is a read-only step, separate from starting the task.
Every failure mode (LLM error, timeout, cancellation, empty output) surfaces as
SuggestionUnavailable; callers decide whether that matters (it never blocks a start).
"""

import logging
import threading
import time
from dataclasses import dataclass

from ..core.errors import SuggestionUnavailable
from ..core.ports import LLMClient
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert marketing strategist and content creator helping users "
    "with their weekly marketing tasks."
)

_CONTENT_CATEGORY_WORDS = ("content", "social", "email", "blog")
_CONTENT_TITLE_WORDS = ("write", "create", "post", "thread", "email")
_CONTENT_DESCRIPTION_WORDS = ("write", "create content", "social media")


@dataclass(slots=True, frozen=True)
class SuggestionContext:
    """What we know about the user's business; every field is optional."""

    business_name: str = ""
    industry: str = ""
    target_audience: str = ""
    marketing_goal: str = ""
    website_url: str = ""
    website_summary: str = ""


def is_content_task(task: Task) -> bool:
    category = task.category.lower()
    title = task.title.lower()
    description = task.description.lower()
    return (
        any(w in category for w in _CONTENT_CATEGORY_WORDS)
        or any(w in title for w in _CONTENT_TITLE_WORDS)
        or any(w in description for w in _CONTENT_DESCRIPTION_WORDS)
    )


def _or_unspecified(value: str) -> str:
    return value.strip() or "Not specified"


def build_approach_prompt(task: Task, context: SuggestionContext | None = None) -> str:
    lines = [
        "=== TASK DETAILS ===",
        f"Title: {task.title}",
        f"Description: {task.description}",
        f"Category: {task.category}",
        f"Priority: {task.priority.value}",
        f"Estimated Time: {task.estimated_time}",
        "",
        "=== USER CONTEXT ===",
    ]
    if context is None:
        lines.append("No profile information available")
    else:
        lines += [
            f"Business: {_or_unspecified(context.business_name)}",
            f"Industry: {_or_unspecified(context.industry)}",
            f"Target Audience: {_or_unspecified(context.target_audience)}",
            f"Marketing Goal: {_or_unspecified(context.marketing_goal)}",
        ]

    lines += ["", "=== WEBSITE ANALYSIS CONTEXT ==="]
    if context is not None and context.website_summary.strip():
        if context.website_url.strip():
            lines.append(f"Website: {context.website_url.strip()}")
        lines.append(f"Business Analysis: {context.website_summary.strip()}")
        lines.append("Reference the strengths and opportunities from this analysis in your answer.")
    else:
        lines.append("No website analysis available.")

    lines += ["", "=== INSTRUCTIONS ==="]
    if is_content_task(task):
        lines += [
            "CONTENT CREATION MODE: generate complete, ready-to-use content the user can copy.",
            f"For this {task.category or 'content'} task:",
            "- Write the actual content (posts, email copy, blog draft, ...).",
            "- Use [PLACEHOLDER: description] for user-specific information.",
            "- Add short customization notes.",
            "- Suggest success metrics to track.",
        ]
    else:
        lines += [
            "STRATEGY MODE: give a detailed, actionable step-by-step approach.",
            f"For this {task.category or 'marketing'} task:",
            "- Provide specific steps, not generic advice.",
            "- Name tools, platforms or resources to use.",
            "- Suggest measurable outcomes and KPIs.",
            "- Fit the plan into the estimated time.",
        ]
    return "\n".join(lines)


def collect_llm_text(
    llm: LLMClient,
    prompt: str,
    system_prompt: str,
    *,
    timeout_seconds: float,
    max_chars: int,
    cancel: threading.Event | None = None,
) -> str:
    """
    Join a streamed completion, bounded by time, size and an optional cancel event.

    The remaining time is handed to the client so a stalled stream cannot outlive
    the deadline. Returns the stripped text, possibly empty.
    """
    deadline = time.monotonic() + timeout_seconds
    parts: list[str] = []
    size = 0

    if cancel is not None and cancel.is_set():
        raise SuggestionUnavailable("Suggestion cancelled")
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise SuggestionUnavailable(f"Suggestion timed out after {timeout_seconds:.0f}s")

    try:
        for piece in llm.stream_chat([{"role": "user", "content": prompt}], system_prompt, timeout=remaining):
            if cancel is not None and cancel.is_set():
                raise SuggestionUnavailable("Suggestion cancelled")
            if time.monotonic() > deadline:
                raise SuggestionUnavailable(f"Suggestion timed out after {timeout_seconds:.0f}s")
            if not piece:
                continue
            parts.append(piece)
            size += len(piece)
            if size >= max_chars:
                break
    except SuggestionUnavailable:
        raise
    except Exception as e:
        raise SuggestionUnavailable(f"Suggestion provider failed: {e}") from e

    return "".join(parts).strip()[:max_chars]


class LLMSuggestionProvider:
    def __init__(
        self,
        llm: LLMClient,
        *,
        timeout_seconds: float = 45.0,
        max_chars: int = 6000,
    ) -> None:
        self._llm = llm
        self._timeout = float(timeout_seconds)
        self._max_chars = int(max_chars)

    def suggest_approach(
        self,
        task: Task,
        context: SuggestionContext | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> str:
        text = collect_llm_text(
            self._llm,
            build_approach_prompt(task, context),
            SYSTEM_PROMPT,
            timeout_seconds=self._timeout,
            max_chars=self._max_chars,
            cancel=cancel,
        )
        if not text:
            raise SuggestionUnavailable("No approach generated")

        logger.debug("Suggestion generated task_id=%s chars=%d", task.id, len(text))
        return text
