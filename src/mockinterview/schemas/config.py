"""Pydantic configuration schema for YAML input."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class BackendConfig(BaseModel):
    provider: Literal["gemini", "http", "offline"] = "gemini"
    model: str = "gemini-2.0-flash"
    endpoint: str | None = None
    timeout: float = Field(default=10.0, gt=0)
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 1024

    model_config = ConfigDict(extra="forbid")


class CacheConfig(BaseModel):
    ttl_seconds: float = 30 * 60

    model_config = ConfigDict(extra="forbid")


class StoreConfig(BaseModel):
    kind: Literal["memory", "json"] = "memory"
    path: str | None = None

    model_config = ConfigDict(extra="forbid")


class LoggingConfig(BaseModel):
    level: str = "INFO"

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    backend: BackendConfig = Field(default_factory=BackendConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(mode="python")


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        return AppConfig()
    return AppConfig.model_validate(raw)
