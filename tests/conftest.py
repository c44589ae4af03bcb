"""Shared test fixtures."""

from __future__ import annotations

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer

from switchboard.agents.models import ModelProvider
from switchboard.agents.providers import CustomExecutor
from switchboard.agents.registry import AgentRegistry
from switchboard.config.models import AgentsConfig, ProviderConfig, QueueConfig
from switchboard.config.settings import Settings
from switchboard.tasks.queue import TaskQueueSystem


@pytest.fixture
def fake_server() -> FakeServer:
    """One in-memory Redis server shared by every connection in a test."""
    return FakeServer()


@pytest.fixture
def connection_factory(fake_server: FakeServer):
    def _connect(url: str) -> FakeAsyncRedis:
        return FakeAsyncRedis(server=fake_server, decode_responses=True)

    return _connect


@pytest.fixture
def queue_config() -> QueueConfig:
    """Fast polling and short backoff so worker tests finish quickly."""
    return QueueConfig(
        queue_name="test-queue",
        poll_interval_ms=10,
        backoff_delay_ms=10,
        workflow_processor=False,
    )


@pytest.fixture
def test_settings(queue_config: QueueConfig) -> Settings:
    """Settings configured for testing (no real API calls, no default agents)."""
    return Settings(
        queue=queue_config,
        providers=ProviderConfig(custom_latency_ms=0),
        agents=AgentsConfig(register_defaults=False),
    )


@pytest_asyncio.fixture
async def task_queue(queue_config: QueueConfig, connection_factory):
    queue = TaskQueueSystem(queue_config, connection_factory=connection_factory)
    yield queue
    await queue.shutdown()


@pytest.fixture
def registry() -> AgentRegistry:
    """Registry whose only backend is the zero-latency custom executor."""
    return AgentRegistry({ModelProvider.CUSTOM: CustomExecutor(latency_ms=0)})
