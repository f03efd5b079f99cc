"""Typer CLI entrypoint for the mock interview."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
import uvicorn
import yaml
from pydantic import ValidationError

from .api import create_app, outcome_payload, session_payload
from .container import DEFAULT_STORE_PATH, create_container
from .core import AnswerOutcome
from .errors import InterviewError, InvalidRequestError
from .logging import configure_logging
from .schemas import TOTAL_QUESTIONS, EvaluationResult
from .schemas.config import load_config
from .service import InterviewService

app = typer.Typer(help="Excel mock interview with generated questions and scored answers.")


@app.callback()
def main_options(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: Optional[str] = typer.Option(None, help="Log level for structured logging."),
    store_dir: Optional[Path] = typer.Option(
        None,
        file_okay=False,
        help="Directory for interview documents. start, answer and show default to ./interviews.",
    ),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    gemini_api_key: Optional[str] = typer.Option(None, envvar="GEMINI_API_KEY", help="Gemini API key."),
    llm_api_key: Optional[str] = typer.Option(None, envvar="LLM_API_KEY", help="API key for the HTTP backend."),
) -> None:
    """Shared options for every command."""
    settings: dict[str, Any] = {}
    if config:
        with config.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
            if not isinstance(loaded, dict):
                raise typer.BadParameter("Config file must be a YAML object", param_name="config")
            settings = loaded
    if store_dir:
        settings["store"] = {"kind": "json", "path": str(store_dir)}
    try:
        app_config = load_config(settings)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_name="config") from exc

    ctx.obj = {
        "settings": app_config.to_settings(),
        "log_level": log_level or app_config.logging.level,
        "audit_log": audit_log,
        "secrets": {"gemini_api_key": gemini_api_key, "llm_api_key": llm_api_key},
    }


def _build_service(ctx: typer.Context, *, json_logs: bool = True, persistent: bool = False) -> InterviewService:
    options = ctx.obj
    configure_logging(options["log_level"], json_output=json_logs)
    settings = options["settings"]
    if persistent and settings["store"]["kind"] == "memory":
        # Separate invocations only see each other through files.
        settings = {**settings, "store": {"kind": "json", "path": DEFAULT_STORE_PATH}}
    container = create_container(
        settings=settings,
        secrets=options["secrets"],
        audit_log=options["audit_log"],
    )
    return container.service()


def _fail(exc: InterviewError) -> typer.Exit:
    typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
    return typer.Exit(code=1)


def _echo_json(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _echo_evaluation(evaluation: EvaluationResult, *, heading: str = "Evaluation") -> None:
    typer.secho(f"\n{heading} (Score: {evaluation.score}/10)", bold=True)
    typer.echo(evaluation.feedback)
    typer.echo("Strengths:")
    for item in evaluation.strengths:
        typer.echo(f"  - {item}")
    typer.echo("Areas for Improvement:")
    for item in evaluation.improvements:
        typer.echo(f"  - {item}")


def _echo_summary(outcome: AnswerOutcome) -> None:
    final = outcome.final_evaluation
    if final is None:
        return
    typer.secho("\nInterview Complete - Final Results", bold=True)
    for index, evaluation in enumerate(outcome.evaluations, start=1):
        _echo_evaluation(evaluation, heading=f"Question {index}")
    typer.secho(f"\nFinal Score: {final.score}/10", bold=True)
    typer.echo(final.text)
    typer.echo("Recommendations for Improvement:")
    for item in final.improvements:
        typer.echo(f"  - {item}")


@app.command()
def run(
    ctx: typer.Context,
    name: str = typer.Option(..., prompt=True, help="Candidate name."),
    email: str = typer.Option(..., prompt=True, help="Candidate email."),
    job_title: str = typer.Option(..., "--job-title", prompt="Job title", help="Role being interviewed for."),
    phone: str = typer.Option("", prompt="Phone (optional)", help="Candidate phone."),
) -> None:
    """Run a full interview interactively in the terminal."""
    service = _build_service(ctx, json_logs=False)
    try:
        started = service.begin(name=name, email=email, phone=phone, job_title=job_title)
    except InterviewError as exc:
        raise _fail(exc) from exc

    question, number = started.question, started.question_number
    while True:
        typer.secho(f"\nQuestion {number}/{TOTAL_QUESTIONS}: {question}", fg=typer.colors.CYAN)
        answer = typer.prompt("Your answer")
        try:
            outcome = service.submit_answer(started.interview_id, answer)
        except InvalidRequestError:
            typer.echo("Please enter an answer.")
            continue
        except InterviewError as exc:
            raise _fail(exc) from exc

        _echo_evaluation(outcome.evaluation)
        if outcome.is_complete:
            _echo_summary(outcome)
            break
        question, number = outcome.next_question or "", outcome.question_number or number + 1

    typer.echo(f"\nInterview id: {started.interview_id}")


@app.command()
def start(
    ctx: typer.Context,
    name: str = typer.Option(..., help="Candidate name."),
    email: str = typer.Option(..., help="Candidate email."),
    job_title: str = typer.Option(..., "--job-title", help="Role being interviewed for."),
    phone: Optional[str] = typer.Option(None, help="Candidate phone."),
) -> None:
    """Begin an interview and print the first question as JSON."""
    service = _build_service(ctx, persistent=True)
    try:
        started = service.begin(name=name, email=email, phone=phone, job_title=job_title)
    except InterviewError as exc:
        raise _fail(exc) from exc
    _echo_json(
        {
            "interviewId": started.interview_id,
            "question": started.question,
            "questionNumber": started.question_number,
        }
    )


@app.command()
def answer(
    ctx: typer.Context,
    interview_id: str = typer.Option(..., "--interview-id", help="Interview id returned by start."),
    text: str = typer.Option(..., "--answer", help="Answer to the current question."),
) -> None:
    """Submit an answer to the current question and print the result as JSON."""
    service = _build_service(ctx, persistent=True)
    try:
        outcome = service.submit_answer(interview_id, text)
    except InterviewError as exc:
        raise _fail(exc) from exc
    _echo_json(outcome_payload(outcome))


@app.command()
def show(
    ctx: typer.Context,
    interview_id: str = typer.Option(..., "--interview-id", help="Interview id."),
) -> None:
    """Print a stored interview as JSON."""
    service = _build_service(ctx, persistent=True)
    try:
        session = service.get_session(interview_id)
    except InterviewError as exc:
        raise _fail(exc) from exc
    _echo_json(session_payload(session))


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(3000, help="Bind port."),
) -> None:
    """Serve the HTTP API."""
    service = _build_service(ctx)
    uvicorn.run(create_app(service), host=host, port=port)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
