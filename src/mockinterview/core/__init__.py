"""Core interview engine components."""

from __future__ import annotations

from .evaluation import (
    AnswerEvaluator,
    HeuristicConfig,
    Malformed,
    ParsedEvaluation,
    heuristic_evaluation,
    parse_evaluation,
)
from .progression import AnswerOutcome, SessionProgression, Transition
from .questions import QuestionSource, QuestionSourceConfig, classify_role, fallback_question

__all__ = [
    "AnswerEvaluator",
    "AnswerOutcome",
    "HeuristicConfig",
    "Malformed",
    "ParsedEvaluation",
    "QuestionSource",
    "QuestionSourceConfig",
    "SessionProgression",
    "Transition",
    "classify_role",
    "fallback_question",
    "heuristic_evaluation",
    "parse_evaluation",
]
