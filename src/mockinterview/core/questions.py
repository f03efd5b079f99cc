"""Interview question generation with per-role fallback banks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import structlog

from ..llm import TextBackend, build_question_prompt
from ..schemas import TOTAL_QUESTIONS

RoleBank = Literal["financial", "data", "default"]

FALLBACK_QUESTIONS: dict[RoleBank, tuple[str, ...]] = {
    "financial": (
        "Explain how you would use VLOOKUP and INDEX-MATCH to reconcile financial data from multiple sheets.",
        "How would you create a dynamic dashboard for monthly financial reporting using pivot tables?",
        "Describe your approach to creating a budget variance analysis template in Excel.",
    ),
    "data": (
        "How would you clean and deduplicate a large dataset using Excel functions?",
        "Explain your process for creating a dynamic dashboard with slicers and pivot tables.",
        "Describe how you would use Power Query to automate data transformation tasks.",
    ),
    "default": (
        "Explain how you would use Excel to analyze and visualize data trends.",
        "Describe your experience with pivot tables and VLOOKUP functions.",
        "How would you automate repetitive tasks in Excel using macros or VBA?",
    ),
}


@dataclass
class QuestionSourceConfig:
    """Acceptance rule for generated questions."""

    min_length: int = 10


def classify_role(job_title: str) -> RoleBank:
    """Map a free-text job title onto one of the fallback banks."""
    normalized = job_title.lower()
    if "financial" in normalized or "finance" in normalized:
        return "financial"
    if "data" in normalized or "analytics" in normalized:
        return "data"
    return "default"


def fallback_question(job_title: str, question_number: int) -> str:
    bank = FALLBACK_QUESTIONS[classify_role(job_title)]
    return bank[(question_number - 1) % len(bank)]


class QuestionSource:
    """Produce role-specific questions, falling back to a static bank."""

    def __init__(self, backend: TextBackend, *, config: QuestionSourceConfig | None = None) -> None:
        self._backend = backend
        self._config = config or QuestionSourceConfig()
        self._logger = structlog.get_logger(__name__)

    def generate_question(self, job_title: str, question_number: int) -> str:
        if not 1 <= question_number <= TOTAL_QUESTIONS:
            raise ValueError(f"question_number must be within 1..{TOTAL_QUESTIONS}")

        prompt = build_question_prompt(job_title, question_number)
        try:
            generated = self._backend.generate(prompt).strip()
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "question.backend_failed",
                job_title=job_title,
                question_number=question_number,
                error=str(exc),
            )
            return self._fallback(job_title, question_number)

        if len(generated) > self._config.min_length:
            return generated

        self._logger.warning(
            "question.too_short",
            job_title=job_title,
            question_number=question_number,
            length=len(generated),
        )
        return self._fallback(job_title, question_number)

    def _fallback(self, job_title: str, question_number: int) -> str:
        question = fallback_question(job_title, question_number)
        self._logger.info(
            "question.fallback",
            bank=classify_role(job_title),
            question_number=question_number,
        )
        return question
