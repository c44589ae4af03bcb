"""Processor for ``workflow_execution`` jobs.

Steps run in order. Each step goes to the first idle agent of its
``agentType``; the agent output is written into the workflow context under
``outputKey``. A step with a ``condition`` only runs when the context value
named by the condition is truthy.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from switchboard.agents.models import AgentExecutionRequest
from switchboard.tasks.ledger import Job
from switchboard.tasks.models import WorkflowPayload, WorkflowStep
from switchboard.tasks.worker import Processor

if TYPE_CHECKING:
    from switchboard.agents.registry import AgentRegistry

logger = logging.getLogger("switchboard.tasks.workflow")


class WorkflowStepError(RuntimeError):
    """A workflow step could not be executed."""


def build_step_prompt(step: WorkflowStep, context: dict[str, Any]) -> str:
    if not context:
        return step.instruction
    return f"{step.instruction}\n\nContext:\n{json.dumps(context, indent=2, default=str)}"


def create_workflow_processor(registry: AgentRegistry) -> Processor:
    """Return a processor that runs workflow jobs against *registry*."""

    async def process(job: Job) -> dict[str, Any]:
        payload = WorkflowPayload.model_validate(job.data.get("payload", {}))
        brand = job.data.get("brandContext")
        context = dict(payload.context)
        steps: list[dict[str, Any]] = []

        logger.info(
            "Running workflow %s for job %s (%d steps)",
            payload.workflow_type, job.id, len(payload.steps),
        )

        for index, step in enumerate(payload.steps, start=1):
            if step.condition and not context.get(step.condition):
                logger.debug("Skipping step %d of job %s, condition %s is falsy", index, job.id, step.condition)
                steps.append({"step": index, "outputKey": step.output_key, "skipped": True})
                continue

            idle = registry.find_idle_agents_by_type(step.agent_type)
            if not idle:
                raise WorkflowStepError(
                    f"Step {index}: no idle agents available of type {step.agent_type}"
                )

            result = await registry.execute_agent(
                AgentExecutionRequest(
                    agent_id=idle[0].id,
                    prompt=build_step_prompt(step, context),
                    brand_context=brand,
                )
            )
            if not result.success:
                raise WorkflowStepError(f"Step {index} failed: {result.error}")

            context[step.output_key] = result.output
            steps.append(
                {
                    "step": index,
                    "outputKey": step.output_key,
                    "agentId": result.agent_id,
                    "skipped": False,
                    "duration": result.duration,
                }
            )

        return {"workflowType": payload.workflow_type, "context": context, "steps": steps}

    return process
