from __future__ import annotations

import json
from pathlib import Path

import pytest

from mockinterview.core import AnswerEvaluator, QuestionSource, SessionProgression
from mockinterview.core.questions import FALLBACK_QUESTIONS
from mockinterview.errors import (
    BackendError,
    InvalidRequestError,
    SessionBusyError,
    SessionClosedError,
    SessionNotFoundError,
    StoreError,
)
from mockinterview.schemas import SessionStatus
from mockinterview.service import AuditLogger, InterviewService, SessionLocks
from mockinterview.store import InMemorySessionStore, JsonFileSessionStore


class ScriptedBackend:
    """Answers question prompts with text and evaluation prompts with JSON."""

    def __init__(self, scores: list[int]) -> None:
        self._scores = list(scores)
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if "return ONLY a JSON object" in prompt:
            score = self._scores.pop(0)
            return json.dumps(
                {
                    "score": score,
                    "feedback": f"Scored {score}.",
                    "strengths": ["Structured answer"],
                    "improvements": [f"Improve answer scored {score}"],
                }
            )
        number = prompt.split("question number ")[1].split(" ")[0]
        return f"Generated Excel question number {number}?"


class DownBackend:
    def generate(self, prompt: str) -> str:
        raise BackendError("service unavailable")


class FailingStore(InMemorySessionStore):
    def update(self, interview_id, fields, *, expected_version=None):  # type: ignore[override]
        raise StoreError("disk full")


def build_service(backend, store=None, audit_logger=None) -> InterviewService:
    progression = SessionProgression(QuestionSource(backend), AnswerEvaluator(backend))
    return InterviewService(
        progression=progression,
        store=store if store is not None else InMemorySessionStore(),
        audit_logger=audit_logger,
    )


def begin(service: InterviewService, job_title: str = "Financial Analyst"):
    return service.begin(name="Ada", email="ada@example.com", phone=None, job_title=job_title)


def test_full_interview_persists_and_audits(tmp_path: Path) -> None:
    store = JsonFileSessionStore(tmp_path / "interviews")
    audit_path = tmp_path / "audit.jsonl"
    service = build_service(ScriptedBackend([8, 6, 7]), store, AuditLogger(audit_path))

    started = begin(service)
    assert started.question == "Generated Excel question number 1?"
    assert started.question_number == 1

    first = service.submit_answer(started.interview_id, "INDEX-MATCH across sheets")
    second = service.submit_answer(started.interview_id, "Pivot tables with slicers")
    final = service.submit_answer(started.interview_id, "Variance = actual - budget")

    assert (first.is_complete, first.question_number) == (False, 2)
    assert second.next_question == "Generated Excel question number 3?"
    assert final.is_complete is True
    assert final.final_evaluation is not None and final.final_evaluation.score == 7

    stored = service.get_session(started.interview_id)
    assert stored.status is SessionStatus.COMPLETED
    assert [slot.answer for slot in stored.slots] == [
        "INDEX-MATCH across sheets",
        "Pivot tables with slicers",
        "Variance = actual - budget",
    ]
    assert stored.final_evaluation == final.final_evaluation
    assert stored.version == 3

    events = [json.loads(line)["event"] for line in audit_path.read_text(encoding="utf-8").splitlines()]
    assert events == [
        "interview.started",
        "interview.answer_recorded",
        "interview.answer_recorded",
        "interview.answer_recorded",
        "interview.completed",
    ]


def test_flow_completes_when_backend_is_down() -> None:
    service = build_service(DownBackend())

    started = begin(service, job_title="Data Engineer")
    outcomes = [service.submit_answer(started.interview_id, text) for text in ("a", "b", "use a pivot")]

    assert started.question == FALLBACK_QUESTIONS["data"][0]
    assert outcomes[0].next_question == FALLBACK_QUESTIONS["data"][1]
    assert [outcome.evaluation.score for outcome in outcomes] == [5, 5, 6]
    assert outcomes[-1].final_evaluation is not None
    assert outcomes[-1].final_evaluation.score == 5


@pytest.mark.parametrize(
    "fields",
    [
        {"name": "", "email": "ada@example.com", "job_title": "Analyst"},
        {"name": "Ada", "email": None, "job_title": "Analyst"},
        {"name": "Ada", "email": "ada@example.com", "job_title": "   "},
    ],
)
def test_begin_requires_candidate_fields(fields: dict) -> None:
    store = InMemorySessionStore()
    service = build_service(DownBackend(), store)

    with pytest.raises(InvalidRequestError):
        service.begin(**fields)

    assert len(store) == 0


def test_blank_answer_rejected_without_evaluating() -> None:
    backend = ScriptedBackend([8])
    service = build_service(backend)
    started = begin(service)
    prompts_before = list(backend.prompts)

    with pytest.raises(InvalidRequestError):
        service.submit_answer(started.interview_id, "   ")

    assert backend.prompts == prompts_before
    assert service.get_session(started.interview_id).version == 0


def test_unknown_interview_is_not_found() -> None:
    service = build_service(DownBackend())

    with pytest.raises(SessionNotFoundError):
        service.submit_answer("does-not-exist", "answer")


def test_completed_interview_rejects_answers_without_mutation() -> None:
    service = build_service(ScriptedBackend([8, 6, 7]))
    started = begin(service)
    for text in ("a", "b", "c"):
        service.submit_answer(started.interview_id, text)
    before = service.get_session(started.interview_id)

    with pytest.raises(SessionClosedError):
        service.submit_answer(started.interview_id, "d")

    assert service.get_session(started.interview_id) == before


def test_store_failure_is_surfaced_and_nothing_is_reported() -> None:
    store = FailingStore()
    service = build_service(ScriptedBackend([8]), store)
    started = begin(service)

    with pytest.raises(StoreError):
        service.submit_answer(started.interview_id, "answer")

    session = service.get_session(started.interview_id)
    assert session.current_index == 1
    assert session.slots[0].answer is None


def test_concurrent_answer_for_same_interview_is_refused() -> None:
    locks = SessionLocks()
    progression = SessionProgression(QuestionSource(DownBackend()), AnswerEvaluator(DownBackend()))
    service = InterviewService(progression=progression, store=InMemorySessionStore(), locks=locks)
    started = begin(service)

    with locks.hold(started.interview_id):
        with pytest.raises(SessionBusyError):
            service.submit_answer(started.interview_id, "answer")

    outcome = service.submit_answer(started.interview_id, "answer")
    assert outcome.question_number == 2
