# tests/test_suggestions.py

from __future__ import annotations

import threading
from datetime import UTC, date, datetime
from types import SimpleNamespace

import httpx
import openai
import pytest

from taskstreak.core.errors import SuggestionUnavailable
from taskstreak.llm.client import OpenRouterLLMClient, friendly_llm_error_message
from taskstreak.llm.offline import OfflineLLMClient
from taskstreak.suggestions.approach import (
    SYSTEM_PROMPT,
    LLMSuggestionProvider,
    SuggestionContext,
    build_approach_prompt,
    is_content_task,
)
from taskstreak.tasks.task_models import Task

from .fakes import FailingLLMClient, FakeLLMClient

NOW = datetime(2024, 1, 2, 10, 0, tzinfo=UTC)


def make_task(title: str = "Audit SEO keywords", category: str = "seo", description: str = "") -> Task:
    return Task(
        id="t1",
        user_id="u1",
        title=title,
        category=category,
        description=description,
        estimated_time="1 hour",
        week_start_date=date(2024, 1, 1),
        created_at=NOW,
        updated_at=NOW,
    )


def test_content_detection() -> None:
    assert is_content_task(make_task(category="Social Media"))
    assert is_content_task(make_task(title="Write a LinkedIn post", category="linkedin"))
    assert is_content_task(make_task(description="Create content for the launch"))
    assert not is_content_task(make_task())


def test_prompt_modes_and_context() -> None:
    strategy = build_approach_prompt(make_task())
    assert "STRATEGY MODE" in strategy
    assert "Title: Audit SEO keywords" in strategy
    assert "No profile information available" in strategy

    ctx = SuggestionContext(business_name="Acme", website_summary="Strong brand, weak SEO.")
    content = build_approach_prompt(make_task(title="Write blog post", category="blog"), ctx)
    assert "CONTENT CREATION MODE" in content
    assert "Business: Acme" in content
    assert "Industry: Not specified" in content
    assert "Business Analysis: Strong brand, weak SEO." in content


def test_provider_joins_stream() -> None:
    llm = FakeLLMClient("Step 1. ", "Step 2.")
    provider = LLMSuggestionProvider(llm)

    assert provider.suggest_approach(make_task()) == "Step 1. Step 2."
    messages, system_prompt = llm.calls[0]
    assert system_prompt == SYSTEM_PROMPT
    assert messages[0]["role"] == "user"
    assert "Title: Audit SEO keywords" in messages[0]["content"]


def test_provider_truncates_long_output() -> None:
    provider = LLMSuggestionProvider(FakeLLMClient("x" * 50, "y" * 50), max_chars=60)
    assert len(provider.suggest_approach(make_task())) == 60


def test_provider_empty_output_is_unavailable() -> None:
    provider = LLMSuggestionProvider(FakeLLMClient("", "  "))
    with pytest.raises(SuggestionUnavailable, match="No approach generated"):
        provider.suggest_approach(make_task())


def test_provider_wraps_llm_errors() -> None:
    provider = LLMSuggestionProvider(FailingLLMClient())
    with pytest.raises(SuggestionUnavailable):
        provider.suggest_approach(make_task())


def test_provider_timeout_and_cancel() -> None:
    with pytest.raises(SuggestionUnavailable, match="timed out"):
        LLMSuggestionProvider(FakeLLMClient("late"), timeout_seconds=-1).suggest_approach(make_task())

    cancel = threading.Event()
    cancel.set()
    with pytest.raises(SuggestionUnavailable, match="cancelled"):
        LLMSuggestionProvider(FakeLLMClient("never")).suggest_approach(make_task(), cancel=cancel)


def test_offline_client_mentions_task_title() -> None:
    provider = LLMSuggestionProvider(OfflineLLMClient())
    text = provider.suggest_approach(make_task(title="Plan webinar"))
    assert '"Plan webinar"' in text
    assert text.startswith("Offline mode")


# ---- OpenRouter client (no network) ----


def _chunk(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _FakeCompletions:
    def __init__(self, outcomes: dict[str, object]) -> None:
        self.outcomes = outcomes
        self.models: list[str] = []
        self.timeouts: list[httpx.Timeout] = []

    def create(self, *, model: str, **kwargs):
        self.models.append(model)
        self.timeouts.append(kwargs["timeout"])
        outcome = self.outcomes[model]
        if isinstance(outcome, Exception):
            raise outcome
        return iter(outcome)


def _settings(**kw) -> SimpleNamespace:
    base = dict(
        openrouter_api_key="k",
        openrouter_base_url="https://example.invalid/api/v1",
        llm_models=["a/model", "b/model"],
        extra_headers={},
        llm_first_token_timeout_seconds=20.0,
    )
    base.update(kw)
    return SimpleNamespace(**base)


def test_openrouter_requires_key() -> None:
    with pytest.raises(RuntimeError, match="API key"):
        OpenRouterLLMClient(_settings(openrouter_api_key=""))


def test_openrouter_falls_back_to_next_model() -> None:
    completions = _FakeCompletions(
        {
            "a/model": openai.APIConnectionError(request=httpx.Request("POST", "https://example.invalid")),
            "b/model": [_chunk(None), _chunk("hello"), _chunk(" world")],
        }
    )
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    client = OpenRouterLLMClient(_settings(), client=fake)

    assert "".join(client.stream_chat([{"role": "user", "content": "hi"}], "sys")) == "hello world"
    assert completions.models == ["a/model", "b/model"]


def test_openrouter_all_models_empty() -> None:
    completions = _FakeCompletions({"a/model": [_chunk(None)], "b/model": []})
    client = OpenRouterLLMClient(_settings(), client=SimpleNamespace(chat=SimpleNamespace(completions=completions)))

    with pytest.raises(RuntimeError, match="All LLM models failed"):
        list(client.stream_chat([{"role": "user", "content": "hi"}], "sys"))


def test_friendly_error_message() -> None:
    msg = friendly_llm_error_message(RuntimeError("LLM API key is not set. ..."))
    assert "TASKSTREAK_OPENROUTER_API_KEY" in msg
    assert friendly_llm_error_message(RuntimeError("")) == "LLM error."


def test_openrouter_caps_request_timeout_to_deadline() -> None:
    completions = _FakeCompletions({"a/model": [_chunk("hi")], "b/model": []})
    client = OpenRouterLLMClient(
        _settings(llm_read_timeout_seconds=25.0), client=SimpleNamespace(chat=SimpleNamespace(completions=completions))
    )

    assert "".join(client.stream_chat([{"role": "user", "content": "hi"}], "sys", timeout=3.0)) == "hi"
    (req,) = completions.timeouts
    assert 0 < req.read <= 3.0
    assert req.connect <= 3.0

    list(client.stream_chat([{"role": "user", "content": "hi"}], "sys"))
    assert completions.timeouts[-1].read == 25.0


def test_openrouter_stops_at_expired_deadline() -> None:
    completions = _FakeCompletions({"a/model": [_chunk("hi")], "b/model": [_chunk("hi")]})
    client = OpenRouterLLMClient(_settings(), client=SimpleNamespace(chat=SimpleNamespace(completions=completions)))

    with pytest.raises(RuntimeError, match="timed out"):
        list(client.stream_chat([{"role": "user", "content": "hi"}], "sys", timeout=0))
    assert completions.models == []
