"""Exception hierarchy for the interview engine."""

from __future__ import annotations


class InterviewError(Exception):
    """Base class for caller-visible interview failures."""


class InvalidRequestError(InterviewError, ValueError):
    """Raised when a request is missing required fields or carries an empty answer."""


class SessionNotFoundError(InterviewError, KeyError):
    """Raised when an interview id does not resolve to a stored session."""

    def __init__(self, interview_id: str):
        super().__init__(interview_id)
        self.interview_id = interview_id

    def __str__(self) -> str:
        return f"Interview not found: {self.interview_id}"


class SessionClosedError(InterviewError):
    """Raised when an answer is submitted to a completed interview."""


class SlotAlreadyAnsweredError(InterviewError):
    """Raised when the current question already holds an answer."""


class SessionBusyError(InterviewError):
    """Raised when another answer for the same interview is still being processed."""


class StoreError(InterviewError):
    """Raised when the session store cannot read or write a record."""


class ConcurrentUpdateError(StoreError):
    """Raised when a stored record changed since it was read."""


class BackendError(Exception):
    """Raised by generative text backends; always absorbed by the core."""


__all__ = [
    "BackendError",
    "ConcurrentUpdateError",
    "InterviewError",
    "InvalidRequestError",
    "SessionBusyError",
    "SessionClosedError",
    "SessionNotFoundError",
    "SlotAlreadyAnsweredError",
    "StoreError",
]
