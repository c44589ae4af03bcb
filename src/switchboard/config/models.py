"""Pydantic models for configuration sub-sections."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from switchboard.config.constants import (
    DEFAULT_BACKOFF_DELAY_MS,
    DEFAULT_CUSTOM_LATENCY_MS,
    DEFAULT_HOST,
    DEFAULT_JOB_ATTEMPTS,
    DEFAULT_JOB_TIMEOUT_MS,
    DEFAULT_KEY_PREFIX,
    DEFAULT_OLLAMA_BASE_URL,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_PORT,
    DEFAULT_QUEUE_NAME,
    DEFAULT_REDIS_URL,
    DEFAULT_STALLED_GRACE_MS,
    DEFAULT_STALLED_INTERVAL_MS,
    KEEP_COMPLETED_JOBS,
    KEEP_FAILED_JOBS,
)


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


class QueueConfig(BaseModel):
    """Job ledger and worker pool settings."""

    redis_url: str = DEFAULT_REDIS_URL
    queue_name: str = DEFAULT_QUEUE_NAME
    key_prefix: str = DEFAULT_KEY_PREFIX
    attempts: int = DEFAULT_JOB_ATTEMPTS
    backoff_delay_ms: int = DEFAULT_BACKOFF_DELAY_MS
    keep_completed: int = KEEP_COMPLETED_JOBS
    keep_failed: int = KEEP_FAILED_JOBS
    default_timeout_ms: int = DEFAULT_JOB_TIMEOUT_MS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    stalled_grace_ms: int = DEFAULT_STALLED_GRACE_MS
    stalled_interval_ms: int = DEFAULT_STALLED_INTERVAL_MS
    workflow_processor: bool = True
    workflow_concurrency: int = 1

    @model_validator(mode="after")
    def validate_limits(self) -> "QueueConfig":
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")
        if self.keep_completed < 0 or self.keep_failed < 0:
            raise ValueError("retention limits must be >= 0")
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be > 0, got {self.poll_interval_ms}")
        if self.stalled_grace_ms < 0 or self.stalled_interval_ms <= 0:
            raise ValueError("stalled_grace_ms must be >= 0 and stalled_interval_ms > 0")
        return self


class ProviderConfig(BaseModel):
    """Model provider credentials and endpoints."""

    openai_api_key: str = Field(default="", exclude=True)
    anthropic_api_key: str = Field(default="", exclude=True)
    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    request_timeout_seconds: float = 120.0
    custom_latency_ms: int = DEFAULT_CUSTOM_LATENCY_MS


class AgentsConfig(BaseModel):
    """Agent registry settings."""

    register_defaults: bool = True


# Maps (nested_key_tuple) -> flat env var name.
# Used by the env-loading logic in settings.py.
FLAT_ENV_MAP: dict[tuple[str, ...], str] = {
    ("server", "port"): "PORT",
    ("queue", "redis_url"): "REDIS_URL",
    ("providers", "openai_api_key"): "OPENAI_API_KEY",
    ("providers", "anthropic_api_key"): "ANTHROPIC_API_KEY",
    ("providers", "ollama_base_url"): "OLLAMA_BASE_URL",
    ("agents", "register_defaults"): "REGISTER_DEFAULT_AGENTS",
}
