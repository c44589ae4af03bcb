"""Agent enums and request/result models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AgentCapability(StrEnum):
    CONTENT_GENERATION = "content_generation"
    CONTEXT_VALIDATION = "context_validation"
    ASSET_MANAGEMENT = "asset_management"
    ANALYTICS = "analytics"
    WORKFLOW_ORCHESTRATION = "workflow_orchestration"
    REASONING = "reasoning"
    PLANNING = "planning"
    CODE_GENERATION = "code_generation"


class AgentStatus(StrEnum):
    IDLE = "idle"
    BUSY = "busy"
    OFFLINE = "offline"
    ERROR = "error"


class AgentType(StrEnum):
    """Coarse role of an agent."""

    BRAND_CONTEXT = "brand_context"
    CONTENT_GENERATION = "content_generation"
    ANALYTICS = "analytics"
    ASSET_MANAGEMENT = "asset_management"
    WORKFLOW_ORCHESTRATION = "workflow_orchestration"


class ModelProvider(StrEnum):
    """Execution backend an agent is dispatched to."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"
    CUSTOM = "custom"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Agent(_CamelModel):
    """A registered agent. ``id`` is assigned by the registry."""

    id: str
    name: str
    type: AgentType
    capabilities: list[AgentCapability]
    status: AgentStatus = AgentStatus.IDLE
    model_provider: ModelProvider
    model_name: str
    last_active: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        self.last_active = datetime.now(UTC)


class AgentRegistrationRequest(_CamelModel):
    name: str
    type: AgentType
    capabilities: list[AgentCapability]
    model_provider: ModelProvider
    model_name: str
    metadata: dict[str, Any] | None = None


class AgentExecutionRequest(_CamelModel):
    agent_id: str
    prompt: str
    brand_context: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    system_instructions: str | None = None


class TokenUsage(_CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class AgentExecutionResult(_CamelModel):
    """Outcome of one agent execution. ``duration`` is in milliseconds."""

    agent_id: str
    success: bool
    output: str | None = None
    error: str | None = None
    usage: TokenUsage | None = None
    duration: int | None = None
    metadata: dict[str, Any] | None = None

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
