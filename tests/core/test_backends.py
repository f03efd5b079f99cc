from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from mockinterview.core.questions import QuestionSource, fallback_question
from mockinterview.errors import BackendError
from mockinterview.llm import (
    CachingBackend,
    GeminiBackend,
    HTTPTextBackend,
    OfflineBackend,
    TextBackend,
    build_evaluation_prompt,
    build_question_prompt,
)


class CountingBackend:
    def __init__(self, error: Exception | None = None) -> None:
        self._error = error
        self.calls = 0

    def generate(self, prompt: str) -> str:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return f"reply {self.calls} to {prompt}"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeModels:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self._text = text
        self._error = error
        self.requests: list[dict[str, Any]] = []

    def generate_content(self, **kwargs: Any) -> SimpleNamespace:
        self.requests.append(kwargs)
        if self._error is not None:
            raise self._error
        return SimpleNamespace(text=self._text)


def test_caching_backend_serves_repeat_prompts_until_expiry():
    inner = CountingBackend()
    clock = FakeClock()
    backend = CachingBackend(inner, ttl_seconds=60, clock=clock)

    first = backend.generate("prompt")
    clock.now = 59.0
    second = backend.generate("prompt")
    clock.now = 61.0
    third = backend.generate("prompt")

    assert first == second == "reply 1 to prompt"
    assert third == "reply 2 to prompt"
    assert inner.calls == 2


def test_caching_backend_does_not_cache_failures():
    inner = CountingBackend(error=BackendError("down"))
    backend = CachingBackend(inner, ttl_seconds=60, clock=FakeClock())

    for _ in range(2):
        with pytest.raises(BackendError):
            backend.generate("prompt")

    assert inner.calls == 2
    assert len(backend) == 0


def test_caching_backend_sweeps_expired_entries_on_insert():
    inner = CountingBackend()
    clock = FakeClock()
    backend = CachingBackend(inner, ttl_seconds=60, clock=clock)

    for step in range(100):
        clock.now = step * 61.0
        backend.generate(f"prompt {step}")

    assert len(backend) == 1


class FixedReplyBackend:
    def __init__(self, reply: str) -> None:
        self._reply = reply
        self.calls = 0

    def generate(self, prompt: str) -> str:
        self.calls += 1
        return self._reply


@pytest.mark.parametrize("reply", ["?", "   ", "Too short"])
def test_caching_backend_does_not_pin_short_replies(reply: str):
    inner = FixedReplyBackend(reply)
    source = QuestionSource(CachingBackend(inner, ttl_seconds=60, clock=FakeClock()))

    first = source.generate_question("Analyst", 1)
    second = source.generate_question("Analyst", 1)

    assert first == second == fallback_question("Analyst", 1)
    assert inner.calls == 2


def test_caching_backend_disabled_with_zero_ttl():
    inner = CountingBackend()
    backend = CachingBackend(inner, ttl_seconds=0)

    backend.generate("prompt")
    backend.generate("prompt")

    assert inner.calls == 2


def test_offline_backend_always_fails():
    with pytest.raises(BackendError):
        OfflineBackend().generate("anything")


def test_gemini_backend_passes_generation_config():
    models = FakeModels(text="How would you use SUMIFS to total sales by region?")
    backend = GeminiBackend(None, model="gemini-test", temperature=0.2, client=SimpleNamespace(models=models))

    text = backend.generate("prompt")

    assert text == "How would you use SUMIFS to total sales by region?"
    request = models.requests[0]
    assert request["model"] == "gemini-test"
    assert request["contents"] == "prompt"
    assert request["config"].temperature == pytest.approx(0.2)
    assert request["config"].max_output_tokens == 1024


@pytest.mark.parametrize(
    "models",
    [FakeModels(error=RuntimeError("429 RESOURCE_EXHAUSTED")), FakeModels(text=None), FakeModels(text="  ")],
)
def test_gemini_backend_wraps_failures(models: FakeModels):
    backend = GeminiBackend(None, client=SimpleNamespace(models=models))

    with pytest.raises(BackendError):
        backend.generate("prompt")


def test_http_backend_wraps_connection_errors():
    backend = HTTPTextBackend("http://127.0.0.1:9/generate", timeout=0.5)

    with pytest.raises(BackendError):
        backend.generate("prompt")


def test_backends_satisfy_protocol():
    assert isinstance(OfflineBackend(), TextBackend)
    assert isinstance(CachingBackend(OfflineBackend()), TextBackend)


def test_prompts_describe_role_and_format():
    question_prompt = build_question_prompt("Data Analyst", 3)
    evaluation_prompt = build_evaluation_prompt("Q?", "A.", "Data Analyst")

    assert "Data Analyst position" in question_prompt
    assert "question number 3 out of 3" in question_prompt
    assert "Question: Q?" in evaluation_prompt
    assert "Answer: A." in evaluation_prompt
    assert '"score": <number 0-10>' in evaluation_prompt
