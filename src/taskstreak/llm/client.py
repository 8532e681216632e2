# src/taskstreak/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError is a subclass of APIConnectionError.
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def _close_stream(stream: Any) -> None:
    """Best-effort close for streaming responses."""
    close = getattr(stream, "close", None)
    if callable(close):
        try:
            close()
        except (httpx.HTTPError, OSError):
            logger.debug("LLM: stream close failed", exc_info=True)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "LLM is not configured (missing API key). Set TASKSTREAK_OPENROUTER_API_KEY in .env."
    if "LLM model list is empty" in msg:
        return "LLM is not configured (no models). Set TASKSTREAK_LLM_MODELS in .env."
    return msg


class OpenRouterLLMClient:
    """
    Streaming chat client for an OpenAI-compatible endpoint (OpenRouter by default).

    Behavior:
    - Tries models in the configured order.
    - If a model doesn't produce a first content token within the first-token timeout,
      it is abandoned and the next model is tried.
    - 404 (model not available) -> model is parked for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    """

    def __init__(self, settings, *, client: OpenAI | None = None) -> None:
        api_key = getattr(settings, "openrouter_api_key", None)
        base_url = getattr(settings, "openrouter_base_url", "") or ""

        if client is None:
            if not api_key or not str(api_key).strip():
                raise RuntimeError("LLM API key is not set. Set TASKSTREAK_OPENROUTER_API_KEY in your .env.")
            if not base_url.strip():
                raise RuntimeError("LLM base URL is not set. Set TASKSTREAK_OPENROUTER_BASE_URL in your .env.")

        self._models: list[str] = [m.strip() for m in (getattr(settings, "llm_models", []) or []) if m.strip()]
        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})
        self._first_token_timeout = float(getattr(settings, "llm_first_token_timeout_seconds", 20.0))
        self._timeout = httpx.Timeout(
            connect=float(getattr(settings, "llm_connect_timeout_seconds", 5.0)),
            read=float(getattr(settings, "llm_read_timeout_seconds", 25.0)),
            write=10.0,
            pool=float(getattr(settings, "llm_connect_timeout_seconds", 5.0)),
        )
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

        # Automatic retries are disabled to allow quick fallback across models.
        self._client = client or OpenAI(
            base_url=str(base_url),
            api_key=str(api_key),
            timeout=self._timeout,
            max_retries=0,
        )

    def _request_timeout(self, remaining: float | None) -> httpx.Timeout:
        if remaining is None:
            return self._timeout
        t = self._timeout
        return httpx.Timeout(
            connect=min(t.connect or remaining, remaining),
            read=min(t.read or remaining, remaining),
            write=min(t.write or remaining, remaining),
            pool=min(t.pool or remaining, remaining),
        )

    def stream_chat(
        self,
        messages: list[ChatMessage],
        system_prompt: str,
        *,
        timeout: float | None = None,
    ) -> Iterable[str]:
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set TASKSTREAK_LLM_MODELS in your .env.")

        last_error: Exception | None = None
        now = time.monotonic()
        overall = None if timeout is None else now + max(0.0, float(timeout))

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            remaining = None if overall is None else overall - time.monotonic()
            if remaining is not None and remaining <= 0:
                last_error = TimeoutError("LLM call deadline exceeded")
                logger.info("LLM: deadline exceeded before model=%s, giving up", model)
                break

            first_token_timeout = self._first_token_timeout
            if remaining is not None:
                first_token_timeout = min(first_token_timeout, remaining)

            logger.info("LLM: trying model=%s (first_token_timeout=%.1fs)", model, first_token_timeout)
            t0 = time.monotonic()
            deadline = t0 + first_token_timeout

            stream = None
            used_any = False

            try:
                stream = self._client.chat.completions.create(
                    model=model,
                    stream=True,
                    extra_headers=self._headers or None,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                    timeout=self._request_timeout(remaining),
                )

                for chunk in stream:
                    if not used_any and time.monotonic() > deadline:
                        last_error = TimeoutError(f"First token timeout on model: {model}")
                        logger.info("LLM: first token timeout on model=%s -> trying next", model)
                        break
                    if overall is not None and time.monotonic() > overall:
                        last_error = TimeoutError("LLM call deadline exceeded")
                        logger.info("LLM: deadline exceeded mid-stream on model=%s", model)
                        break

                    content = None
                    if chunk.choices:
                        delta = getattr(chunk.choices[0], "delta", None)
                        content = getattr(delta, "content", None) if delta is not None else None

                    if content:
                        if not used_any:
                            logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    logger.debug("LLM: completed with model=%s", model)
                    return

                if last_error is None:
                    last_error = RuntimeError(f"Model returned no content: {model}")

            except openai.OpenAIError as e:
                last_error = e

                if _is_auth_error(e):
                    raise RuntimeError(
                        "LLM authentication failed. Check your API key (TASKSTREAK_OPENROUTER_API_KEY)."
                    ) from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + 3600.0  # 1 hour
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            finally:
                if stream is not None:
                    _close_stream(stream)

        if last_error is not None:
            if isinstance(last_error, TimeoutError):
                raise RuntimeError("LLM timed out. Try again later or change models.") from last_error
            if _is_rate_limit_error(last_error):
                raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
            raise RuntimeError("All LLM models failed.") from last_error

        raise RuntimeError("All LLM models failed.")
