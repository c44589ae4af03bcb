"""Explicit service context: the registry and queue a process runs with."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from switchboard.agents.defaults import register_default_agents
from switchboard.agents.providers import build_executors
from switchboard.agents.registry import AgentRegistry
from switchboard.tasks.models import TaskType
from switchboard.tasks.queue import ConnectionFactory, TaskQueueSystem
from switchboard.tasks.workflow import create_workflow_processor

if TYPE_CHECKING:
    from switchboard.config.settings import Settings

logger = logging.getLogger("switchboard.core.context")


@dataclass
class ServiceContext:
    """Everything request handlers need, created once at startup."""

    settings: Settings
    registry: AgentRegistry
    queue: TaskQueueSystem
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    async def close(self) -> None:
        """Shut down the queue, then release provider clients."""
        try:
            await self.queue.shutdown()
        finally:
            await self.registry.aclose()


async def build_context(
    settings: Settings,
    *,
    registry: AgentRegistry | None = None,
    connection_factory: ConnectionFactory | None = None,
) -> ServiceContext:
    """Create the registry and queue for *settings*.

    Must run inside an event loop: registering the workflow processor starts
    its worker.
    """
    if registry is None:
        registry = AgentRegistry(build_executors(settings.providers))
        if settings.agents.register_defaults:
            register_default_agents(registry)

    queue = TaskQueueSystem(settings.queue, connection_factory=connection_factory)
    if settings.queue.workflow_processor:
        queue.register_processor(
            TaskType.WORKFLOW_EXECUTION,
            create_workflow_processor(registry),
            concurrency=settings.queue.workflow_concurrency,
        )

    logger.info(
        "Service context ready: %d agents, queue %s",
        len(registry.get_all_agents()),
        settings.queue.queue_name,
    )
    return ServiceContext(settings=settings, registry=registry, queue=queue)
