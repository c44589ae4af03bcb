"""Agent registry and provider execution."""

from switchboard.agents.models import (
    Agent,
    AgentCapability,
    AgentExecutionRequest,
    AgentExecutionResult,
    AgentRegistrationRequest,
    AgentStatus,
    AgentType,
    ModelProvider,
)
from switchboard.agents.registry import AgentRegistry

__all__ = [
    "Agent",
    "AgentCapability",
    "AgentExecutionRequest",
    "AgentExecutionResult",
    "AgentRegistrationRequest",
    "AgentRegistry",
    "AgentStatus",
    "AgentType",
    "ModelProvider",
]
