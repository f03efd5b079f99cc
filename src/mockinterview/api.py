"""FastAPI application exposing the interview flow over HTTP."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .core import AnswerOutcome
from .errors import (
    InvalidRequestError,
    SessionBusyError,
    SessionClosedError,
    SessionNotFoundError,
    SlotAlreadyAnsweredError,
    StoreError,
)
from .schemas import InterviewSession
from .service import InterviewService


class StartRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    job_title: str | None = Field(default=None, alias="jobTitle")

    model_config = ConfigDict(populate_by_name=True)


class AnswerRequest(BaseModel):
    interview_id: str | None = Field(default=None, alias="interviewId")
    answer: str | None = None

    model_config = ConfigDict(populate_by_name=True)


def outcome_payload(outcome: AnswerOutcome) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "evaluation": outcome.evaluation.model_dump(mode="json"),
        "isComplete": outcome.is_complete,
    }
    if outcome.is_complete:
        payload["finalEvaluation"] = (
            outcome.final_evaluation.model_dump(mode="json") if outcome.final_evaluation else None
        )
        payload["evaluations"] = [evaluation.model_dump(mode="json") for evaluation in outcome.evaluations]
    else:
        payload["nextQuestion"] = outcome.next_question
        payload["questionNumber"] = outcome.question_number
    return payload


def session_payload(session: InterviewSession) -> dict[str, Any]:
    document = session.model_dump(mode="json")
    return {
        "interviewId": session.id,
        "name": session.candidate.name,
        "email": session.candidate.email,
        "phone": session.candidate.phone,
        "jobTitle": session.candidate.job_title,
        "status": session.status.value,
        "currentQuestion": session.current_index,
        "questions": document["slots"],
        "finalEvaluation": document["final_evaluation"],
        "startTime": document["started_at"],
        "completedAt": document["completed_at"],
    }


def create_app(service: InterviewService) -> FastAPI:
    app = FastAPI(title="Excel Mock Interviewer", version=__version__)
    app.state.service = service

    @app.exception_handler(InvalidRequestError)
    async def _invalid(request: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(SessionNotFoundError)
    async def _not_found(request: Request, exc: SessionNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "Interview not found"})

    async def _conflict(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=409, content={"error": str(exc)})

    for error_type in (SessionClosedError, SlotAlreadyAnsweredError, SessionBusyError):
        app.add_exception_handler(error_type, _conflict)

    @app.exception_handler(StoreError)
    async def _store_failed(request: Request, exc: StoreError) -> JSONResponse:
        if request.url.path == "/start":
            message = "Failed to start interview"
        elif request.method == "GET":
            message = "Failed to load interview"
        else:
            message = "Failed to process answer"
        return JSONResponse(status_code=500, content={"error": message})

    @app.post("/start")
    def start(payload: StartRequest) -> dict[str, Any]:
        started = service.begin(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            job_title=payload.job_title,
        )
        return {
            "interviewId": started.interview_id,
            "question": started.question,
            "questionNumber": started.question_number,
        }

    @app.post("/answer")
    def answer(payload: AnswerRequest) -> dict[str, Any]:
        outcome = service.submit_answer(payload.interview_id, payload.answer)
        return outcome_payload(outcome)

    @app.get("/interviews/{interview_id}")
    def show(interview_id: str) -> dict[str, Any]:
        return session_payload(service.get_session(interview_id))

    return app


__all__ = ["create_app", "outcome_payload", "session_payload"]
