"""Agents seeded at startup when default registration is enabled."""

from __future__ import annotations

import logging

from switchboard.agents.models import (
    AgentCapability,
    AgentRegistrationRequest,
    AgentType,
    ModelProvider,
)
from switchboard.agents.registry import AgentRegistry

logger = logging.getLogger("switchboard.agents.defaults")

DEFAULT_AGENTS: list[AgentRegistrationRequest] = [
    AgentRegistrationRequest(
        name="Brand Context Manager",
        type=AgentType.BRAND_CONTEXT,
        capabilities=[AgentCapability.CONTEXT_VALIDATION, AgentCapability.REASONING],
        model_provider=ModelProvider.OPENAI,
        model_name="gpt-4",
    ),
    AgentRegistrationRequest(
        name="Content Generator",
        type=AgentType.CONTENT_GENERATION,
        capabilities=[AgentCapability.CONTENT_GENERATION, AgentCapability.CODE_GENERATION],
        model_provider=ModelProvider.ANTHROPIC,
        model_name="claude-3-opus-20240229",
    ),
    AgentRegistrationRequest(
        name="Workflow Orchestrator",
        type=AgentType.WORKFLOW_ORCHESTRATION,
        capabilities=[AgentCapability.WORKFLOW_ORCHESTRATION, AgentCapability.PLANNING],
        model_provider=ModelProvider.OPENAI,
        model_name="gpt-4-turbo",
    ),
    AgentRegistrationRequest(
        name="Analytics Agent",
        type=AgentType.ANALYTICS,
        capabilities=[AgentCapability.ANALYTICS, AgentCapability.REASONING],
        model_provider=ModelProvider.ANTHROPIC,
        model_name="claude-3-sonnet-20240229",
    ),
    AgentRegistrationRequest(
        name="Asset Manager",
        type=AgentType.ASSET_MANAGEMENT,
        capabilities=[AgentCapability.ASSET_MANAGEMENT],
        model_provider=ModelProvider.OLLAMA,
        model_name="llama3",
    ),
]


def register_default_agents(registry: AgentRegistry) -> list[str]:
    """Register the built-in agents and return their ids."""
    ids = [registry.register_agent(request).id for request in DEFAULT_AGENTS]
    logger.info("Registered %d default agents", len(ids))
    return ids
