from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CandidateInfo(BaseModel):
    """Candidate profile captured when an interview begins."""

    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: str | None = None
    job_title: str = Field(min_length=1)

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)

    @field_validator("phone")
    @classmethod
    def _blank_phone_is_missing(cls, value: str | None) -> str | None:
        return value or None
