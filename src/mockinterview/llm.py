"""Generative text backends and the prompts sent to them."""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Protocol, runtime_checkable
from urllib import request

import structlog
from google import genai
from google.genai import types

from .errors import BackendError
from .schemas import TOTAL_QUESTIONS


@runtime_checkable
class TextBackend(Protocol):
    """Generative text contract used by the question source and evaluator."""

    def generate(self, prompt: str) -> str:
        """Return generated text or raise ``BackendError``."""


def build_question_prompt(job_title: str, question_number: int) -> str:
    return (
        f"Create a challenging Excel-related interview question for a {job_title} position.\n"
        f"The question should be specific to how {job_title}s might use Excel in their work.\n"
        f"This is question number {question_number} out of {TOTAL_QUESTIONS}.\n"
        "Format the response as a single question without any additional text.\n"
        "Make sure the question is practical and specific to Excel functionality."
    )


def build_evaluation_prompt(question: str, answer: str, job_title: str) -> str:
    return (
        f"As an expert Excel interviewer, evaluate this answer for a {job_title} position.\n\n"
        f"Question: {question}\n"
        f"Answer: {answer}\n\n"
        "Evaluate and return ONLY a JSON object in this exact format:\n"
        "{\n"
        '    "score": <number 0-10>,\n'
        '    "feedback": "<one sentence evaluation>",\n'
        '    "strengths": ["<strength1>", "<strength2>"],\n'
        '    "improvements": ["<improvement1>", "<improvement2>"]\n'
        "}"
    )


class GeminiBackend:
    """Gemini backend with a client owned by the instance."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gemini-2.0-flash",
        timeout: float = 10.0,
        temperature: float = 0.7,
        top_k: int = 40,
        top_p: float = 0.95,
        max_output_tokens: int = 1024,
        client: Any | None = None,
    ) -> None:
        self._client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )
        self._model = model
        self._generation_config = types.GenerateContentConfig(
            temperature=temperature,
            top_k=top_k,
            top_p=top_p,
            max_output_tokens=max_output_tokens,
        )

    def generate(self, prompt: str) -> str:
        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=prompt,
                config=self._generation_config,
            )
            text = response.text or ""
        except Exception as exc:  # noqa: BLE001
            raise BackendError(f"Gemini request failed: {exc}") from exc
        if not text.strip():
            raise BackendError("Gemini returned an empty response")
        return text


class HTTPTextBackend:
    """Simple HTTP client for a self-hosted text generation API."""

    def __init__(self, endpoint: str, api_key: str | None = None, *, timeout: float = 10.0):
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout

    def generate(self, prompt: str) -> str:
        data = json.dumps({"prompt": prompt}, ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        req = request.Request(self._endpoint, data=data, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self._timeout) as resp:
                body = resp.read().decode("utf-8")
        except OSError as exc:
            raise BackendError(f"HTTP backend request failed: {exc}") from exc

        try:
            payload = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            raise BackendError("HTTP backend returned invalid JSON") from exc
        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise BackendError("HTTP backend response has no 'text' field")
        return text


class OfflineBackend:
    """Backend used when nothing is configured; every call falls back."""

    def generate(self, prompt: str) -> str:
        raise BackendError("No generative backend configured")


def worth_caching(text: str, *, min_length: int = 10) -> bool:
    """Blank and very short replies are retried rather than cached."""
    return len(text.strip()) > min_length


class CachingBackend:
    """Read-through TTL cache in front of another backend.

    Entries are keyed by the full prompt text. Every insert sweeps out
    expired entries, so prompts that are never asked again do not pile up.
    Failures and replies rejected by ``cacheable`` are not cached. A
    non-positive TTL disables the cache entirely.
    """

    def __init__(
        self,
        backend: TextBackend,
        *,
        ttl_seconds: float = 30 * 60,
        clock: Callable[[], float] | None = None,
        cacheable: Callable[[str], bool] = worth_caching,
    ) -> None:
        self._backend = backend
        self._ttl = ttl_seconds
        self._clock = clock or time.monotonic
        self._cacheable = cacheable
        self._entries: dict[str, tuple[float, str]] = {}
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    def generate(self, prompt: str) -> str:
        if self._ttl <= 0:
            return self._backend.generate(prompt)

        now = self._clock()
        with self._lock:
            entry = self._entries.get(prompt)
            if entry is not None:
                expires_at, text = entry
                if expires_at > now:
                    self._logger.debug("cache.hit")
                    return text
                del self._entries[prompt]

        text = self._backend.generate(prompt)
        if not self._cacheable(text):
            self._logger.debug("cache.skipped", length=len(text))
            return text

        with self._lock:
            self._evict_expired(now)
            self._entries[prompt] = (now + self._ttl, text)
        return text

    def _evict_expired(self, now: float) -> None:
        expired = [prompt for prompt, (expires_at, _) in self._entries.items() if expires_at <= now]
        for prompt in expired:
            del self._entries[prompt]

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "CachingBackend",
    "GeminiBackend",
    "HTTPTextBackend",
    "OfflineBackend",
    "TextBackend",
    "build_evaluation_prompt",
    "build_question_prompt",
    "worth_caching",
]
