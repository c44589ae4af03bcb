"""In-memory agent registry with capability, type and provider indices."""

from __future__ import annotations

import asyncio
import logging
import random
import threading
import time
from typing import Any

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
from switchboard.agents.providers import ProviderExecutor

logger = logging.getLogger("switchboard.agents.registry")


def generate_agent_id(agent_type: str) -> str:
    return f"{agent_type}-{int(time.time() * 1000)}-{random.randint(0, 999)}"


class AgentRegistry:
    """Directory of agents that serializes execution per agent.

    Indices map each enum value to an insertion-ordered dict of agent ids, so
    lookups return agents in registration order. All mutations of the primary
    map, the indices and agent status go through ``self._lock``.
    """

    def __init__(self, executors: dict[ModelProvider, ProviderExecutor] | None = None) -> None:
        self._executors = dict(executors or {})
        self._agents: dict[str, Agent] = {}
        self._by_capability: dict[AgentCapability, dict[str, None]] = {c: {} for c in AgentCapability}
        self._by_type: dict[AgentType, dict[str, None]] = {t: {} for t in AgentType}
        self._by_provider: dict[ModelProvider, dict[str, None]] = {p: {} for p in ModelProvider}
        self._lock = threading.Lock()

    # -- Registration ----------------------------------------------------------

    def register_agent(self, request: AgentRegistrationRequest) -> Agent:
        with self._lock:
            agent_id = generate_agent_id(request.type)
            while agent_id in self._agents:
                agent_id = generate_agent_id(request.type)

            agent = Agent(
                id=agent_id,
                name=request.name,
                type=request.type,
                capabilities=list(dict.fromkeys(request.capabilities)),
                model_provider=request.model_provider,
                model_name=request.model_name,
                metadata=request.metadata or {},
            )
            self._agents[agent_id] = agent
            for capability in agent.capabilities:
                self._by_capability[capability][agent_id] = None
            self._by_type[agent.type][agent_id] = None
            self._by_provider[agent.model_provider][agent_id] = None

        logger.info("Registered agent %s of type %s", agent_id, agent.type)
        return agent

    def remove_agent(self, agent_id: str) -> bool:
        with self._lock:
            agent = self._agents.pop(agent_id, None)
            if agent is None:
                return False
            for capability in agent.capabilities:
                self._by_capability[capability].pop(agent_id, None)
            self._by_type[agent.type].pop(agent_id, None)
            self._by_provider[agent.model_provider].pop(agent_id, None)

        logger.info("Removed agent %s", agent_id)
        return True

    # -- Lookup ----------------------------------------------------------------

    def get_agent(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def get_all_agents(self) -> list[Agent]:
        return list(self._agents.values())

    def _resolve(self, index: dict[str, None]) -> list[Agent]:
        with self._lock:
            return [self._agents[i] for i in index if i in self._agents]

    def find_agents_by_type(self, agent_type: AgentType | str) -> list[Agent]:
        return self._resolve(self._by_type.get(agent_type, {}))

    def find_agents_by_capability(self, capability: AgentCapability | str) -> list[Agent]:
        return self._resolve(self._by_capability.get(capability, {}))

    def find_agents_by_provider(self, provider: ModelProvider | str) -> list[Agent]:
        return self._resolve(self._by_provider.get(provider, {}))

    def find_idle_agents_by_capability(self, capability: AgentCapability | str) -> list[Agent]:
        return [a for a in self.find_agents_by_capability(capability) if a.status == AgentStatus.IDLE]

    def find_idle_agents_by_type(self, agent_type: AgentType | str) -> list[Agent]:
        return [a for a in self.find_agents_by_type(agent_type) if a.status == AgentStatus.IDLE]

    # -- Status ----------------------------------------------------------------

    def update_agent_status(self, agent_id: str, status: AgentStatus) -> bool:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return False
            agent.status = AgentStatus(status)
            agent.touch()

        logger.info("Updated agent %s status to %s", agent_id, agent.status)
        return True

    def _set_status(self, agent: Agent, status: AgentStatus) -> None:
        with self._lock:
            agent.status = status
            agent.touch()

    # -- Execution -------------------------------------------------------------

    async def execute_agent(self, request: AgentExecutionRequest) -> AgentExecutionResult:
        """Run *request* on its agent, holding the agent busy for the duration.

        Unknown and busy agents are rejected without any state change. Handled
        provider failures return the agent to idle; anything unexpected leaves
        it in ``error`` until its status is updated explicitly. A cancelled
        execution returns the agent to idle before the cancellation propagates.
        """
        with self._lock:
            agent = self._agents.get(request.agent_id)
            if agent is None:
                return AgentExecutionResult(
                    agent_id=request.agent_id,
                    success=False,
                    error=f"Agent with ID {request.agent_id} not found",
                )
            if agent.status == AgentStatus.BUSY:
                return AgentExecutionResult(
                    agent_id=request.agent_id,
                    success=False,
                    error=f"Agent {request.agent_id} is busy",
                )
            agent.status = AgentStatus.BUSY
            agent.touch()

        logger.info("Executing agent %s of type %s", agent.id, agent.type)
        started = time.monotonic()
        try:
            executor = self._executors.get(agent.model_provider)
            if executor is None:
                result = AgentExecutionResult(
                    agent_id=agent.id,
                    success=False,
                    error=f"Unsupported model provider: {agent.model_provider}",
                )
            else:
                result = await executor.execute(agent, request)
        except asyncio.CancelledError:
            logger.warning("Execution of agent %s was cancelled", agent.id)
            self._set_status(agent, AgentStatus.IDLE)
            raise
        except Exception as exc:
            logger.exception("Error executing agent %s", agent.id)
            self._set_status(agent, AgentStatus.ERROR)
            return AgentExecutionResult(
                agent_id=agent.id,
                success=False,
                error=str(exc) or type(exc).__name__,
                duration=_elapsed_ms(started),
            )

        self._set_status(agent, AgentStatus.IDLE)
        result.duration = _elapsed_ms(started)
        return result

    # -- Stats -----------------------------------------------------------------

    def get_agent_stats(self) -> dict[str, Any]:
        with self._lock:
            agents = list(self._agents.values())
            by_type = {t.value: len(ids) for t, ids in self._by_type.items()}
            by_provider = {p.value: len(ids) for p, ids in self._by_provider.items()}

        by_status = {s.value: 0 for s in AgentStatus}
        for agent in agents:
            by_status[agent.status.value] += 1

        return {
            "totalAgents": len(agents),
            "agentsByType": by_type,
            "agentsByStatus": by_status,
            "agentsByModelProvider": by_provider,
        }

    async def aclose(self) -> None:
        for executor in self._executors.values():
            await executor.aclose()


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
