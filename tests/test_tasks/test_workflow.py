"""Tests for the workflow_execution processor."""

from __future__ import annotations

import asyncio

import pytest

from switchboard.agents.models import (
    AgentCapability,
    AgentRegistrationRequest,
    AgentStatus,
    AgentType,
    ModelProvider,
)
from switchboard.agents.providers import CustomExecutor
from switchboard.agents.registry import AgentRegistry
from switchboard.tasks.ledger import Job, JobState
from switchboard.tasks.models import TaskData, TaskPriority, TaskStatus, TaskType, WorkflowStep
from switchboard.tasks.workflow import (
    WorkflowStepError,
    build_step_prompt,
    create_workflow_processor,
)


def _register(registry, name, agent_type):
    return registry.register_agent(
        AgentRegistrationRequest(
            name=name,
            type=agent_type,
            capabilities=[AgentCapability.REASONING],
            model_provider=ModelProvider.CUSTOM,
            model_name=f"{name}-model",
        )
    )


def _workflow_job(steps, context=None) -> Job:
    return Job(
        id="workflow_execution-1-1",
        name="workflow_execution",
        data={
            "type": "workflow_execution",
            "payload": {"workflowType": "campaign", "steps": steps, "context": context or {}},
            "brandContext": "acme",
        },
        priority=10,
        delay_ms=0,
        timeout_ms=60_000,
        max_attempts=3,
        backoff_delay_ms=1000,
        attempts_made=0,
        state=JobState.ACTIVE,
        timestamp=0,
    )


def test_build_step_prompt_without_context():
    step = WorkflowStep(agent_type="analytics", instruction="Summarize", output_key="summary")
    assert build_step_prompt(step, {}) == "Summarize"


def test_build_step_prompt_includes_context():
    step = WorkflowStep(agent_type="analytics", instruction="Summarize", output_key="summary")
    prompt = build_step_prompt(step, {"topic": "shoes"})
    assert prompt.startswith("Summarize\n\nContext:\n")
    assert '"topic": "shoes"' in prompt


@pytest.mark.asyncio
async def test_steps_run_in_order_and_fill_context(registry):
    _register(registry, "Analyst", AgentType.ANALYTICS)
    _register(registry, "Writer", AgentType.CONTENT_GENERATION)
    process = create_workflow_processor(registry)

    result = await process(
        _workflow_job(
            [
                {"agentType": "analytics", "instruction": "Analyze", "outputKey": "analysis"},
                {"agentType": "content_generation", "instruction": "Write", "outputKey": "draft"},
            ],
            context={"topic": "shoes"},
        )
    )

    assert result["workflowType"] == "campaign"
    context = result["context"]
    assert context["topic"] == "shoes"
    assert context["analysis"].startswith("[Custom Model] Processed: Analyze")
    assert "with model Analyst-model" in context["analysis"]
    # The second step sees the first step's output
    assert "analysis" in context["draft"]
    assert [s["outputKey"] for s in result["steps"]] == ["analysis", "draft"]


@pytest.mark.asyncio
async def test_condition_skips_step(registry):
    _register(registry, "Analyst", AgentType.ANALYTICS)
    process = create_workflow_processor(registry)

    result = await process(
        _workflow_job(
            [
                {"agentType": "analytics", "instruction": "Deep dive", "outputKey": "deep", "condition": "wantDeep"},
                {"agentType": "analytics", "instruction": "Quick look", "outputKey": "quick"},
            ],
            context={"wantDeep": False},
        )
    )

    assert "deep" not in result["context"]
    assert "quick" in result["context"]
    assert result["steps"][0]["skipped"] is True


@pytest.mark.asyncio
async def test_no_idle_agent_raises(registry):
    agent = _register(registry, "Analyst", AgentType.ANALYTICS)
    registry.update_agent_status(agent.id, AgentStatus.OFFLINE)
    process = create_workflow_processor(registry)

    with pytest.raises(WorkflowStepError, match="no idle agents available of type analytics"):
        await process(_workflow_job([{"agentType": "analytics", "instruction": "x", "outputKey": "y"}]))


@pytest.mark.asyncio
async def test_failed_step_raises(registry):
    # The registry fixture has no Ollama backend
    registry.register_agent(
        AgentRegistrationRequest(
            name="Local",
            type=AgentType.ANALYTICS,
            capabilities=[AgentCapability.ANALYTICS],
            model_provider=ModelProvider.OLLAMA,
            model_name="llama3",
        )
    )
    process = create_workflow_processor(registry)

    with pytest.raises(WorkflowStepError, match="Step 1 failed: Unsupported model provider"):
        await process(_workflow_job([{"agentType": "analytics", "instruction": "x", "outputKey": "y"}]))


@pytest.mark.asyncio
async def test_timed_out_workflow_releases_agent(task_queue):
    registry = AgentRegistry({ModelProvider.CUSTOM: CustomExecutor(latency_ms=500)})
    agent = _register(registry, "Analyst", AgentType.ANALYTICS)
    task_queue.register_processor(TaskType.WORKFLOW_EXECUTION, create_workflow_processor(registry))

    job_id = await task_queue.add_task(
        TaskData(
            type=TaskType.WORKFLOW_EXECUTION,
            payload={
                "workflowType": "report",
                "steps": [{"agentType": "analytics", "instruction": "x", "outputKey": "y"}],
                "context": {},
            },
            timeout=50,
        ),
        TaskPriority.HIGH,
    )

    deadline = asyncio.get_running_loop().time() + 5.0
    while await task_queue.get_task_status(job_id) != TaskStatus.FAILED:
        assert asyncio.get_running_loop().time() < deadline, "workflow job never failed"
        await asyncio.sleep(0.01)

    job = await task_queue.ledger.get_job(job_id)
    # Every attempt reached the agent instead of finding it stuck busy
    assert job.attempts_made == 3
    assert job.failed_reason == "Job timed out after 50ms"
    assert agent.status == AgentStatus.IDLE
