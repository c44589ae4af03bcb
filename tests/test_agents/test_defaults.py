"""Tests for default agent seeding."""

from __future__ import annotations

from switchboard.agents.defaults import DEFAULT_AGENTS, register_default_agents
from switchboard.agents.models import AgentType, ModelProvider


def test_registers_five_agents(registry):
    ids = register_default_agents(registry)
    assert len(ids) == 5
    assert len(registry.get_all_agents()) == 5


def test_one_agent_per_type(registry):
    register_default_agents(registry)
    for agent_type in AgentType:
        assert len(registry.find_agents_by_type(agent_type)) == 1


def test_default_models(registry):
    register_default_agents(registry)
    by_name = {a.name: a for a in registry.get_all_agents()}
    assert by_name["Brand Context Manager"].model_name == "gpt-4"
    assert by_name["Content Generator"].model_provider == ModelProvider.ANTHROPIC
    assert by_name["Asset Manager"].model_provider == ModelProvider.OLLAMA
    assert by_name["Asset Manager"].model_name == "llama3"


def test_defaults_are_not_shared_state(registry):
    register_default_agents(registry)
    register_default_agents(registry)
    assert len(registry.get_all_agents()) == 2 * len(DEFAULT_AGENTS)
