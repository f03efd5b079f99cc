"""Interview service: the begin / submit-answer boundary over the engine."""

from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import pendulum
import structlog
from pydantic import ValidationError

from .core import AnswerOutcome, SessionProgression
from .errors import InvalidRequestError, SessionBusyError, SessionNotFoundError, StoreError
from .schemas import CandidateInfo, InterviewSession
from .store import SessionStore
from . import __version__


@dataclass(slots=True)
class StartedInterview:
    interview_id: str
    question: str
    question_number: int = 1


class SessionLocks:
    """Fail-fast guard allowing one in-flight answer per interview."""

    def __init__(self) -> None:
        self._active: set[str] = set()
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, interview_id: str) -> Iterator[None]:
        with self._guard:
            if interview_id in self._active:
                raise SessionBusyError(f"Interview {interview_id} is already processing an answer")
            self._active.add(interview_id)
        try:
            yield
        finally:
            with self._guard:
                self._active.discard(interview_id)


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def append(self, record: dict) -> None:
        entry = {
            "timestamp": pendulum.now().to_iso8601_string(),
            "app_version": __version__,
            **record,
        }
        with self._lock, self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry, ensure_ascii=False))
            handle.write("\n")


class InterviewService:
    """Validate requests, run transitions and persist them."""

    def __init__(
        self,
        *,
        progression: SessionProgression,
        store: SessionStore,
        audit_logger: AuditLogger | None = None,
        locks: SessionLocks | None = None,
    ) -> None:
        self._progression = progression
        self._store = store
        self._audit = audit_logger
        self._locks = locks or SessionLocks()
        self._logger = structlog.get_logger(__name__)

    def begin(
        self,
        *,
        name: str | None,
        email: str | None,
        job_title: str | None,
        phone: str | None = None,
    ) -> StartedInterview:
        try:
            candidate = CandidateInfo(name=name, email=email, phone=phone, job_title=job_title)
        except ValidationError as exc:
            raise InvalidRequestError("Name, email, and job title are required") from exc

        session = self._progression.start(candidate)
        try:
            interview_id = self._store.insert(session)
        except StoreError as exc:
            self._logger.error("interview.store_failed", action="begin", error=str(exc))
            raise

        self._logger.info("interview.started", interview_id=interview_id, job_title=candidate.job_title)
        self._record(
            {
                "event": "interview.started",
                "interview_id": interview_id,
                "job_title": candidate.job_title,
                "question": session.current_slot.question,
            }
        )
        return StartedInterview(interview_id=interview_id, question=session.current_slot.question)

    def submit_answer(self, interview_id: str | None, answer: str | None) -> AnswerOutcome:
        if not interview_id or not (answer or "").strip():
            raise InvalidRequestError("Interview ID and answer are required")

        with self._locks.hold(interview_id):
            session = self._store.find_by_id(interview_id)
            if session is None:
                raise SessionNotFoundError(interview_id)

            transition = self._progression.submit_answer(session, answer)
            try:
                self._store.update(
                    interview_id,
                    transition.update,
                    expected_version=transition.expected_version,
                )
            except StoreError as exc:
                self._logger.error("interview.store_failed", action="answer", interview_id=interview_id, error=str(exc))
                raise

        outcome = transition.outcome
        answered_number = session.current_index
        self._logger.info(
            "interview.answer_recorded",
            interview_id=interview_id,
            question_number=answered_number,
            score=outcome.evaluation.score,
        )
        self._record(
            {
                "event": "interview.answer_recorded",
                "interview_id": interview_id,
                "question_number": answered_number,
                "score": outcome.evaluation.score,
            }
        )
        if outcome.is_complete and outcome.final_evaluation is not None:
            self._logger.info(
                "interview.completed",
                interview_id=interview_id,
                final_score=outcome.final_evaluation.score,
            )
            self._record(
                {
                    "event": "interview.completed",
                    "interview_id": interview_id,
                    "final_score": outcome.final_evaluation.score,
                    "scores": [evaluation.score for evaluation in outcome.evaluations],
                }
            )
        return outcome

    def get_session(self, interview_id: str) -> InterviewSession:
        session = self._store.find_by_id(interview_id)
        if session is None:
            raise SessionNotFoundError(interview_id)
        return session

    def _record(self, record: dict[str, Any]) -> None:
        if self._audit:
            self._audit.append(record)


__all__ = ["AuditLogger", "InterviewService", "SessionLocks", "StartedInterview"]
