# src/taskpilot/llm/client.py

"""
OpenAI-compatible capabilities (chat completions + embeddings).

Behavior:
- The SDK client is created lazily, with explicit httpx timeouts and
  automatic retries disabled, so a slow endpoint falls back quickly.
- Models are tried in configured order. 404 -> model parked for an hour;
  rate limit / network / timeout -> next model.
- Every failure ends as Unavailable(reason); nothing is raised to callers.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..errors import CapabilityUnavailable
from .result import CapabilityResult, Ok, Unavailable

logger = logging.getLogger(__name__)

_BAD_MODEL_PARK_SECONDS = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    return isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError))


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError is a subclass of APIConnectionError.
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def _build_client(settings: Any) -> OpenAI:
    api_key = getattr(settings, "llm_api_key", None)
    base_url = getattr(settings, "llm_base_url", "") or ""

    if not api_key or not str(api_key).strip():
        raise CapabilityUnavailable("LLM API key is not set. Set TASKPILOT_LLM_API_KEY in your .env.")
    if not base_url.strip():
        raise CapabilityUnavailable("LLM base URL is not set. Set TASKPILOT_LLM_BASE_URL in your .env.")

    timeout = _make_timeout(
        connect_s=float(getattr(settings, "llm_connect_timeout_seconds", 5.0)),
        read_s=float(getattr(settings, "llm_read_timeout_seconds", 25.0)),
    )
    return OpenAI(base_url=str(base_url), api_key=str(api_key), timeout=timeout, max_retries=0)


class OpenAITextGenerator:
    """TextGenerator over an OpenAI-compatible chat-completions endpoint."""

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        self._models: list[str] = [m.strip() for m in (getattr(settings, "llm_models", []) or []) if m.strip()]
        if not self._models:
            raise CapabilityUnavailable("LLM model list is empty. Set TASKPILOT_LLM_MODELS in your .env.")
        self._headers: dict[str, str] = dict(getattr(settings, "extra_headers", {}) or {})
        self._client = client if client is not None else _build_client(settings)
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    def _complete(self, model: str, prompt: str, max_tokens: int, temperature: float) -> str | None:
        resp = self._client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
            extra_headers=self._headers or None,
        )
        if not resp.choices:
            return None
        content = resp.choices[0].message.content
        return content.strip() if content else None

    def generate(self, prompt: str, *, max_tokens: int, temperature: float) -> CapabilityResult[str]:
        now = time.monotonic()
        last_reason = "all models failed"

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            t0 = time.monotonic()
            try:
                text = self._complete(model, prompt, max_tokens, temperature)
            except Exception as e:
                last_reason = f"{model}: {e.__class__.__name__}"

                if _is_auth_error(e):
                    logger.warning("LLM: authentication failed (check TASKPILOT_LLM_API_KEY)")
                    return Unavailable("authentication failed")

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + _BAD_MODEL_PARK_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                elif _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                elif _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                else:
                    logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            if text:
                logger.debug("LLM: completed with model=%s in %.2fs", model, time.monotonic() - t0)
                return Ok(text)

            last_reason = f"{model}: empty response"
            logger.info("LLM: model=%s returned no content, trying next", model)

        return Unavailable(last_reason)


class OpenAIEmbedder:
    """Embedder over an OpenAI-compatible embeddings endpoint."""

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        self._model = str(getattr(settings, "embedding_model", "") or "").strip()
        if not self._model:
            raise CapabilityUnavailable("Embedding model is not set. Set TASKPILOT_EMBEDDING_MODEL.")
        self._dimensions = int(getattr(settings, "embedding_dimensions", 1024))
        self._client = client if client is not None else _build_client(settings)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> CapabilityResult[list[float]]:
        try:
            resp = self._client.embeddings.create(
                model=self._model,
                input=[text],
                dimensions=self._dimensions,
            )
        except Exception as e:
            logger.info("Embedding failed model=%s (%s)", self._model, e.__class__.__name__)
            return Unavailable(f"{self._model}: {e.__class__.__name__}")

        if not resp.data:
            return Unavailable(f"{self._model}: empty response")
        vector = [float(x) for x in resp.data[0].embedding]
        if len(vector) != self._dimensions:
            return Unavailable(f"{self._model}: expected {self._dimensions} dims, got {len(vector)}")
        return Ok(vector)
