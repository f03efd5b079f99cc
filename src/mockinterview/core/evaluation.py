"""Answer scoring through the generative backend with a heuristic fallback."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Union

import structlog

from ..llm import TextBackend, build_evaluation_prompt
from ..schemas import EvaluationResult

_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")


@dataclass(slots=True, frozen=True)
class ParsedEvaluation:
    evaluation: EvaluationResult


@dataclass(slots=True, frozen=True)
class Malformed:
    reason: str


ParseOutcome = Union[ParsedEvaluation, Malformed]


@dataclass
class HeuristicConfig:
    """Deterministic evaluation used whenever the backend is unusable."""

    base_score: int = 5
    advanced_score: int = 6
    advanced_keywords: tuple[str, ...] = ("vlookup", "pivot", "macro")
    excerpt_length: int = 50
    improvements: tuple[str, ...] = field(
        default=(
            "Add more specific Excel function examples",
            "Include step-by-step implementation details",
            "Provide practical use cases or scenarios",
        )
    )


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def clamp_score(value: float) -> int:
    return min(10, max(0, round_half_up(value)))


def parse_evaluation(text: str) -> ParseOutcome:
    """Parse a backend response into an evaluation.

    The whole response is tried first. If it does not decode or does not
    carry the expected fields, the span from the first ``{`` to the last
    ``}`` is tried instead, which recovers objects wrapped in prose or code
    fences.
    """
    stripped = text.strip()
    outcome = _validate(_decode(stripped))
    if isinstance(outcome, ParsedEvaluation):
        return outcome

    match = _OBJECT_SPAN.search(stripped)
    if match is None:
        return Malformed(f"{outcome.reason}; no JSON object in response")
    return _validate(_decode(match.group(0)))


def heuristic_evaluation(
    question: str,
    answer: str,
    *,
    config: HeuristicConfig | None = None,
) -> EvaluationResult:
    config = config or HeuristicConfig()
    strengths = [
        "Attempted to answer the question",
        "Used Excel formulas in explanation" if "=" in answer else "Provided an explanation",
    ]
    score = config.base_score
    lowered = answer.lower()
    if any(keyword in lowered for keyword in config.advanced_keywords):
        score = config.advanced_score
        strengths.append("Mentioned advanced Excel features")

    return EvaluationResult(
        score=score,
        feedback=f"Answer received for question about {question[: config.excerpt_length]}...",
        strengths=strengths,
        improvements=list(config.improvements),
    )


class AnswerEvaluator:
    """Score free-text answers; never raises for backend problems."""

    def __init__(self, backend: TextBackend, *, config: HeuristicConfig | None = None) -> None:
        self._backend = backend
        self._config = config or HeuristicConfig()
        self._logger = structlog.get_logger(__name__)

    def evaluate_answer(self, question: str, answer: str, job_title: str) -> EvaluationResult:
        prompt = build_evaluation_prompt(question, answer, job_title)
        try:
            raw = self._backend.generate(prompt)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("evaluation.backend_failed", job_title=job_title, error=str(exc))
            return self._fallback(question, answer)

        outcome = parse_evaluation(raw)
        if isinstance(outcome, ParsedEvaluation):
            return outcome.evaluation

        self._logger.warning("evaluation.malformed", job_title=job_title, reason=outcome.reason)
        return self._fallback(question, answer)

    def _fallback(self, question: str, answer: str) -> EvaluationResult:
        evaluation = heuristic_evaluation(question, answer, config=self._config)
        self._logger.info("evaluation.fallback", score=evaluation.score)
        return evaluation


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        return Malformed(f"invalid JSON: {exc.msg}")


def _validate(payload: Any) -> ParseOutcome:
    if isinstance(payload, Malformed):
        return payload
    if not isinstance(payload, dict):
        return Malformed("expected a JSON object")

    score = payload.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
        return Malformed("score must be a number")

    feedback = payload.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        return Malformed("feedback must be non-empty text")

    strengths = payload.get("strengths")
    improvements = payload.get("improvements")
    if not _is_text_list(strengths) or not _is_text_list(improvements):
        return Malformed("strengths and improvements must be lists of text")

    return ParsedEvaluation(
        EvaluationResult(
            score=clamp_score(score),
            feedback=feedback.strip(),
            strengths=list(strengths),
            improvements=list(improvements),
        )
    )


def _is_text_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)
