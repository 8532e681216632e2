# src/taskstreak/llm/offline.py

from __future__ import annotations

import json
from collections.abc import Iterable

from ..core.ports import ChatMessage
from ..suggestions.weekly_plan import FALLBACK_WEEK_PLAN, PLAN_SYSTEM_PROMPT


class OfflineLLMClient:
    """
    Offline deterministic LLM client used when no external API is configured.

    Returns a generic step-by-step approach so the start flow stays usable,
    and a fixed starter plan when asked for a weekly plan.
    """

    def stream_chat(
        self,
        messages: list[ChatMessage],
        system_prompt: str,
        *,
        timeout: float | None = None,
    ) -> Iterable[str]:
        if system_prompt == PLAN_SYSTEM_PROMPT:
            yield json.dumps(FALLBACK_WEEK_PLAN)
            return

        task_line = ""
        for m in reversed(messages):
            if m["role"] == "user":
                for line in m["content"].splitlines():
                    if line.startswith("Title:"):
                        task_line = line[len("Title:"):].strip()
                        break
                break

        subject = f' for "{task_line}"' if task_line else ""
        yield (
            f"Offline mode: no external LLM is configured. Generic approach{subject}:\n"
            "1. Define the single outcome you want from this task.\n"
            "2. Block a focused time slot matching the estimate.\n"
            "3. Produce a first draft, then review it once.\n"
            "4. Publish or send it, and note one metric to check later.\n\n"
            "Set TASKSTREAK_OPENROUTER_API_KEY (and TASKSTREAK_LLM_MODELS) to enable real suggestions."
        )
