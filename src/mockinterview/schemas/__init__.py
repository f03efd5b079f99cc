"""Pydantic schema definitions for interview records."""

from __future__ import annotations

from .candidate import CandidateInfo
from .session import (
    TOTAL_QUESTIONS,
    EvaluationResult,
    FinalEvaluation,
    InterviewSession,
    QuestionSlot,
    SessionStatus,
)

__all__ = [
    "TOTAL_QUESTIONS",
    "CandidateInfo",
    "EvaluationResult",
    "FinalEvaluation",
    "InterviewSession",
    "QuestionSlot",
    "SessionStatus",
]
