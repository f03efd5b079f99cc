from __future__ import annotations

import pytest

from mockinterview.core import QuestionSource, classify_role, fallback_question
from mockinterview.core.questions import FALLBACK_QUESTIONS
from mockinterview.errors import BackendError


class StubBackend:
    def __init__(self, response: str | None = None, error: Exception | None = None):
        self._response = response
        self._error = error
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self._error is not None:
            raise self._error
        return self._response or ""


def test_generated_question_is_trimmed_and_returned():
    backend = StubBackend("  How would you build a rolling 12-month forecast with OFFSET?  \n")
    source = QuestionSource(backend)

    question = source.generate_question("Financial Analyst", 2)

    assert question == "How would you build a rolling 12-month forecast with OFFSET?"
    assert "Financial Analyst" in backend.prompts[0]
    assert "question number 2 out of 3" in backend.prompts[0]


@pytest.mark.parametrize("question_number", [1, 2, 3])
def test_backend_failure_falls_back_to_bank(question_number: int):
    source = QuestionSource(StubBackend(error=BackendError("quota exceeded")))

    question = source.generate_question("Senior Financial Analyst", question_number)

    assert question == FALLBACK_QUESTIONS["financial"][question_number - 1]


@pytest.mark.parametrize("response", ["", "   ", "Pivot?", "0123456789"])
def test_short_output_falls_back(response: str):
    source = QuestionSource(StubBackend(response))

    question = source.generate_question("Graphic Designer", 1)

    assert question == FALLBACK_QUESTIONS["default"][0]


def test_eleven_characters_is_accepted():
    source = QuestionSource(StubBackend("What is =A1?"))

    assert source.generate_question("Graphic Designer", 1) == "What is =A1?"


def test_unexpected_backend_exception_is_absorbed():
    source = QuestionSource(StubBackend(error=RuntimeError("socket closed")))

    question = source.generate_question("Data Engineer", 3)

    assert question == FALLBACK_QUESTIONS["data"][2]


@pytest.mark.parametrize(
    ("job_title", "bank"),
    [
        ("Senior Financial Analyst", "financial"),
        ("Head of FINANCE", "financial"),
        ("Data Engineer", "data"),
        ("Marketing Analytics Lead", "data"),
        ("Graphic Designer", "default"),
    ],
)
def test_role_classification(job_title: str, bank: str):
    assert classify_role(job_title) == bank


def test_financial_takes_precedence_over_data():
    assert classify_role("Financial Data Analyst") == "financial"


def test_fallback_question_wraps_by_bank_length():
    assert fallback_question("Data Engineer", 4) == FALLBACK_QUESTIONS["data"][0]


def test_question_number_outside_interview_is_rejected():
    source = QuestionSource(StubBackend("A perfectly valid generated question?"))

    with pytest.raises(ValueError):
        source.generate_question("Data Engineer", 0)
