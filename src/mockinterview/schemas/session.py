"""Interview session snapshots.

Sessions are immutable: every transition produces a new snapshot through
``model_copy`` so a failed write never leaves a half-updated record behind.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .candidate import CandidateInfo

TOTAL_QUESTIONS = 3


class SessionStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class EvaluationResult(BaseModel):
    """Score and feedback for a single answer."""

    score: int = Field(ge=0, le=10)
    feedback: str = Field(min_length=1)
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class QuestionSlot(BaseModel):
    """One question with its answer and evaluation, filled together."""

    question: str = Field(min_length=1)
    answer: str | None = None
    evaluation: EvaluationResult | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _answer_and_evaluation_together(self) -> "QuestionSlot":
        if (self.answer is None) != (self.evaluation is None):
            raise ValueError("answer and evaluation must be set together")
        return self

    @property
    def is_answered(self) -> bool:
        return self.evaluation is not None


class FinalEvaluation(BaseModel):
    """Aggregate result attached to a completed interview."""

    text: str
    score: int = Field(ge=0, le=10)
    improvements: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)


class InterviewSession(BaseModel):
    """Durable record of one candidate's interview."""

    id: str
    candidate: CandidateInfo
    slots: list[QuestionSlot] = Field(min_length=1, max_length=TOTAL_QUESTIONS)
    current_index: int = Field(default=1, ge=1, le=TOTAL_QUESTIONS)
    status: SessionStatus = SessionStatus.IN_PROGRESS
    final_evaluation: FinalEvaluation | None = None
    started_at: datetime
    completed_at: datetime | None = None
    version: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_progress(self) -> "InterviewSession":
        if self.current_index != len(self.slots):
            raise ValueError("current_index must point at the last slot")
        completed = self.status is SessionStatus.COMPLETED
        if completed != (self.final_evaluation is not None):
            raise ValueError("final_evaluation is present only on completed interviews")
        return self

    @property
    def current_slot(self) -> QuestionSlot:
        return self.slots[self.current_index - 1]

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETED

    @property
    def evaluations(self) -> list[EvaluationResult]:
        return [slot.evaluation for slot in self.slots if slot.evaluation is not None]
