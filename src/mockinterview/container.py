"""Dependency injection container for the interview engine."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
from dependency_injector import containers, providers

from .core import AnswerEvaluator, QuestionSource, SessionProgression
from .llm import CachingBackend, GeminiBackend, HTTPTextBackend, OfflineBackend
from .schemas.config import load_config
from .service import AuditLogger, InterviewService
from .store import InMemorySessionStore, JsonFileSessionStore

DEFAULT_STORE_PATH = "interviews"


class InterviewContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    gemini_backend = providers.Singleton(
        GeminiBackend,
        api_key=config.secrets.gemini_api_key,
        model=config.backend.model,
        timeout=config.backend.timeout,
        temperature=config.backend.temperature,
        top_k=config.backend.top_k,
        top_p=config.backend.top_p,
        max_output_tokens=config.backend.max_output_tokens,
    )
    http_backend = providers.Singleton(
        HTTPTextBackend,
        endpoint=config.backend.endpoint,
        api_key=config.secrets.llm_api_key,
        timeout=config.backend.timeout,
    )
    offline_backend = providers.Singleton(OfflineBackend)

    raw_backend = providers.Selector(
        config.backend["provider"],
        gemini=gemini_backend,
        http=http_backend,
        offline=offline_backend,
    )
    backend = providers.Singleton(
        CachingBackend,
        raw_backend,
        ttl_seconds=config.cache.ttl_seconds,
    )

    question_source = providers.Singleton(QuestionSource, backend=backend)
    answer_evaluator = providers.Singleton(AnswerEvaluator, backend=backend)

    progression = providers.Singleton(
        SessionProgression,
        questions=question_source,
        evaluator=answer_evaluator,
    )

    memory_store = providers.Singleton(InMemorySessionStore)
    json_store = providers.Singleton(JsonFileSessionStore, directory=config.store.path)
    store = providers.Selector(
        config.store["kind"],
        memory=memory_store,
        json=json_store,
    )

    audit_logger = providers.Object(None)

    service = providers.Singleton(
        InterviewService,
        progression=progression,
        store=store,
        audit_logger=audit_logger,
    )


def create_container(
    *,
    settings: dict[str, Any] | None = None,
    secrets: dict[str, str | None] | None = None,
    audit_log: Path | None = None,
) -> InterviewContainer:
    """Instantiate container with validated settings and optional overrides."""

    values = load_config(settings or {}).to_settings()
    secrets = secrets or {}
    values["secrets"] = {
        "gemini_api_key": secrets.get("gemini_api_key"),
        "llm_api_key": secrets.get("llm_api_key"),
    }

    backend_settings = values["backend"]
    provider = backend_settings["provider"]
    if provider == "gemini" and not values["secrets"]["gemini_api_key"]:
        provider = "offline"
    elif provider == "http" and not backend_settings.get("endpoint"):
        provider = "offline"
    if provider != backend_settings["provider"]:
        structlog.get_logger(__name__).warning(
            "backend.not_configured",
            requested=backend_settings["provider"],
            using=provider,
        )
    backend_settings["provider"] = provider

    if values["store"]["kind"] == "json" and not values["store"].get("path"):
        values["store"]["path"] = DEFAULT_STORE_PATH

    container = InterviewContainer()
    container.config.from_dict(values)

    if audit_log:
        container.audit_logger.override(providers.Singleton(AuditLogger, audit_log))

    return container
