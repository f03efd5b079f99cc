"""Durable session stores holding one JSON document per interview."""

from __future__ import annotations

import json
import os
import re
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import structlog
from pydantic import ValidationError

from .errors import ConcurrentUpdateError, SessionNotFoundError, StoreError
from .schemas import InterviewSession

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@runtime_checkable
class SessionStore(Protocol):
    """Document store contract for interview sessions."""

    def insert(self, session: InterviewSession) -> str:
        """Persist a new session and return its id."""

    def find_by_id(self, interview_id: str) -> InterviewSession | None:
        """Return the stored session or ``None`` when the id is unknown."""

    def update(
        self,
        interview_id: str,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> None:
        """Apply a partial update atomically, optionally guarded by version."""


class InMemorySessionStore:
    """Process-local store used for tests and single-process runs."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def insert(self, session: InterviewSession) -> str:
        with self._lock:
            if session.id in self._documents:
                raise StoreError(f"Interview {session.id} already exists")
            self._documents[session.id] = session.model_dump(mode="json")
        return session.id

    def find_by_id(self, interview_id: str) -> InterviewSession | None:
        with self._lock:
            document = self._documents.get(interview_id)
        if document is None:
            return None
        return _load(document)

    def update(
        self,
        interview_id: str,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> None:
        with self._lock:
            document = self._documents.get(interview_id)
            if document is None:
                raise SessionNotFoundError(interview_id)
            self._documents[interview_id] = _merge(document, fields, expected_version)

    def __len__(self) -> int:
        return len(self._documents)


class JsonFileSessionStore:
    """Store each session as ``<id>.json`` inside a directory."""

    def __init__(self, directory: str | Path):
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    def insert(self, session: InterviewSession) -> str:
        path = self._path(session.id)
        with self._lock:
            if path.exists():
                raise StoreError(f"Interview {session.id} already exists")
            self._write(path, session.model_dump(mode="json"))
        return session.id

    def find_by_id(self, interview_id: str) -> InterviewSession | None:
        if not _SAFE_ID.match(interview_id):
            return None
        document = self._read(self._path(interview_id))
        if document is None:
            return None
        return _load(document)

    def update(
        self,
        interview_id: str,
        fields: dict[str, Any],
        *,
        expected_version: int | None = None,
    ) -> None:
        if not _SAFE_ID.match(interview_id):
            raise SessionNotFoundError(interview_id)
        path = self._path(interview_id)
        with self._lock:
            document = self._read(path)
            if document is None:
                raise SessionNotFoundError(interview_id)
            self._write(path, _merge(document, fields, expected_version))

    def _path(self, interview_id: str) -> Path:
        if not _SAFE_ID.match(interview_id):
            raise StoreError(f"Unsafe interview id: {interview_id!r}")
        return self._directory / f"{interview_id}.json"

    def _read(self, path: Path) -> dict[str, Any] | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"Failed to read {path.name}") from exc
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Corrupt session document {path.name}") from exc

    def _write(self, path: Path, document: dict[str, Any]) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            self._logger.error("store.write_failed", path=str(path), error=str(exc))
            raise StoreError(f"Failed to write {path.name}") from exc


def _merge(
    document: dict[str, Any],
    fields: dict[str, Any],
    expected_version: int | None,
) -> dict[str, Any]:
    if expected_version is not None and document.get("version", 0) != expected_version:
        raise ConcurrentUpdateError(
            f"Interview {document.get('id')} changed since version {expected_version}"
        )
    merged = {**document, **fields}
    _load(merged)
    return merged


def _load(document: dict[str, Any]) -> InterviewSession:
    try:
        return InterviewSession.model_validate(document)
    except ValidationError as exc:
        raise StoreError(f"Invalid session document: {exc.error_count()} errors") from exc


__all__ = ["InMemorySessionStore", "JsonFileSessionStore", "SessionStore"]
