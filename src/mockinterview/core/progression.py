"""Interview session state machine."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Sequence

import pendulum

from ..errors import InvalidRequestError, SessionClosedError, SlotAlreadyAnsweredError
from ..schemas import (
    TOTAL_QUESTIONS,
    CandidateInfo,
    EvaluationResult,
    FinalEvaluation,
    InterviewSession,
    QuestionSlot,
    SessionStatus,
)
from .evaluation import AnswerEvaluator, round_half_up
from .questions import QuestionSource

ProficiencyTier = Literal["strong", "adequate", "limited"]


@dataclass(slots=True)
class AnswerOutcome:
    """Result handed back to the caller after an answer is processed."""

    evaluation: EvaluationResult
    is_complete: bool
    question_number: int | None = None
    next_question: str | None = None
    final_evaluation: FinalEvaluation | None = None
    evaluations: list[EvaluationResult] = field(default_factory=list)


@dataclass(slots=True)
class Transition:
    """New snapshot plus the single combined store update that persists it."""

    session: InterviewSession
    expected_version: int
    update: dict[str, Any]
    outcome: AnswerOutcome


class SessionProgression:
    """Advance an interview from one question to the next, then finalize it."""

    DEFAULT_TIERS: dict[ProficiencyTier, int] = {
        "strong": 7,
        "adequate": 5,
    }

    def __init__(
        self,
        questions: QuestionSource,
        evaluator: AnswerEvaluator,
        *,
        tiers: dict[ProficiencyTier, int] | None = None,
        now_provider: Callable[[], Any] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._questions = questions
        self._evaluator = evaluator
        self._tiers = tiers or self.DEFAULT_TIERS.copy()
        self._now_provider = now_provider or pendulum.now
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)

    def start(self, candidate: CandidateInfo) -> InterviewSession:
        question = self._questions.generate_question(candidate.job_title, 1)
        return InterviewSession(
            id=self._id_factory(),
            candidate=candidate,
            slots=[QuestionSlot(question=question)],
            started_at=self._now_provider(),
        )

    def submit_answer(self, session: InterviewSession, answer: str | None) -> Transition:
        text = (answer or "").strip()
        if not text:
            raise InvalidRequestError("Answer is required")
        if session.is_complete:
            raise SessionClosedError(f"Interview {session.id} is already completed")

        slot = session.current_slot
        if slot.is_answered:
            raise SlotAlreadyAnsweredError(
                f"Question {session.current_index} of interview {session.id} is already answered"
            )

        job_title = session.candidate.job_title
        evaluation = self._evaluator.evaluate_answer(slot.question, text, job_title)
        slots = [*session.slots[:-1], QuestionSlot(question=slot.question, answer=text, evaluation=evaluation)]
        number = session.current_index

        if number < TOTAL_QUESTIONS:
            next_question = self._questions.generate_question(job_title, number + 1)
            slots.append(QuestionSlot(question=next_question))
            changes: dict[str, Any] = {
                "slots": slots,
                "current_index": number + 1,
                "version": session.version + 1,
            }
            outcome = AnswerOutcome(
                evaluation=evaluation,
                is_complete=False,
                question_number=number + 1,
                next_question=next_question,
            )
        else:
            evaluations = [item.evaluation for item in slots if item.evaluation is not None]
            final_evaluation = self.summarize(evaluations)
            changes = {
                "slots": slots,
                "status": SessionStatus.COMPLETED,
                "final_evaluation": final_evaluation,
                "completed_at": self._now_provider(),
                "version": session.version + 1,
            }
            outcome = AnswerOutcome(
                evaluation=evaluation,
                is_complete=True,
                final_evaluation=final_evaluation,
                evaluations=evaluations,
            )

        updated = _evolve(session, changes)
        return Transition(
            session=updated,
            expected_version=session.version,
            update=updated.model_dump(mode="json", include=set(changes)),
            outcome=outcome,
        )

    def summarize(self, evaluations: Sequence[EvaluationResult]) -> FinalEvaluation:
        if not evaluations:
            raise ValueError("Cannot summarize an interview without evaluations")
        scores = [evaluation.score for evaluation in evaluations]
        average = round_half_up(sum(scores) / len(scores))
        last = evaluations[-1]
        # Only the last answer's improvements are carried into the summary.
        return FinalEvaluation(
            text=(
                f"Interview completed with an average score of {average}/10. "
                f"The candidate demonstrated {self.tier_for(average)} Excel proficiency. "
                f"{last.feedback}"
            ),
            score=average,
            improvements=list(last.improvements),
        )

    def tier_for(self, score: int) -> ProficiencyTier:
        if score >= self._tiers["strong"]:
            return "strong"
        if score >= self._tiers["adequate"]:
            return "adequate"
        return "limited"


def _evolve(session: InterviewSession, changes: dict[str, Any]) -> InterviewSession:
    return InterviewSession.model_validate({**session.model_dump(), **changes})
