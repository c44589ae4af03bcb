"""The agent-orchestration tools and resources."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from switchboard import __version__
from switchboard.agents.models import (
    AgentCapability,
    AgentExecutionRequest,
    AgentRegistrationRequest,
    AgentType,
    ModelProvider,
)
from switchboard.config.constants import SERVICE_DESCRIPTION
from switchboard.mcp.protocol import MCPResource, MCPServer, MCPTool
from switchboard.tasks.models import PRIORITY_BY_NAME, TaskData, TaskPriority, TaskType

if TYPE_CHECKING:
    from switchboard.core.context import ServiceContext

logger = logging.getLogger("switchboard.mcp.tools")


class _ToolInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Input models --------------------------------------------------------------


class ExecuteAgentInput(_ToolInput):
    agent_type: AgentType = Field(description="The type of agent to execute")
    prompt: str = Field(description="The prompt or instructions to send to the agent")
    brand_context: str | None = Field(default=None, description="The brand context to use")
    temperature: float | None = Field(default=None, ge=0, le=2, description="Temperature for generation")
    max_tokens: int | None = Field(default=None, gt=0, description="Maximum tokens to generate")


class AddTaskInput(_ToolInput):
    task_type: TaskType = Field(description="The type of task to add to the queue")
    payload: dict[str, Any] = Field(description="The task payload (data needed for the task)")
    brand_context: str | None = Field(default=None, description="The brand context")
    priority: Literal["low", "medium", "high", "critical"] | None = Field(
        default=None, description="Task priority"
    )
    depends_on: list[str] | None = Field(default=None, description="Task IDs this task depends on")
    timeout: int | None = Field(default=None, gt=0, description="Task timeout in milliseconds")


class TaskIdInput(_ToolInput):
    task_id: str = Field(description="The ID of the task")


class RegisterAgentInput(_ToolInput):
    name: str = Field(description="Name of the agent")
    type: AgentType = Field(description="Type of the agent")
    capabilities: list[AgentCapability] = Field(description="List of agent capabilities")
    model_provider: ModelProvider = Field(description="The model provider")
    model_name: str = Field(description="The model name")


class EmptyInput(_ToolInput):
    pass


class WorkflowStepInput(_ToolInput):
    agent_type: AgentType = Field(description="Type of agent to use for this step")
    instruction: str = Field(description="Instruction for this step")
    output_key: str = Field(description="Key to store the output under")
    condition: str | None = Field(default=None, description="Context key that must be truthy for the step to run")


class OrchestrateWorkflowInput(_ToolInput):
    workflow_type: str = Field(description="Type of workflow to orchestrate")
    steps: list[WorkflowStepInput] = Field(description="Steps in the workflow")
    context: dict[str, Any] = Field(description="Initial context for the workflow")
    brand_context: str | None = Field(default=None, description="Brand context")
    timeout: int | None = Field(default=None, gt=0, description="Workflow timeout in milliseconds")


# -- Server --------------------------------------------------------------------


def create_mcp_server(context: ServiceContext) -> MCPServer:
    """Build the protocol server over *context*'s registry and queue."""
    registry = context.registry
    queue = context.queue

    server = MCPServer(
        name=context.settings.service_name,
        version=__version__,
        description=SERVICE_DESCRIPTION,
    )

    async def execute_agent(params: ExecuteAgentInput) -> dict[str, Any]:
        logger.info("Executing agent of type %s", params.agent_type)
        idle = registry.find_idle_agents_by_type(params.agent_type)
        if not idle:
            return {
                "success": False,
                "error": f"No idle agents available of type {params.agent_type}",
            }

        result = await registry.execute_agent(
            AgentExecutionRequest(
                agent_id=idle[0].id,
                prompt=params.prompt,
                brand_context=params.brand_context,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
            )
        )
        response = result.to_response()
        response.pop("metadata", None)
        return response

    async def add_task_to_queue(params: AddTaskInput) -> dict[str, Any]:
        logger.info("Adding task of type %s to queue", params.task_type)
        priority = PRIORITY_BY_NAME.get(params.priority or "medium", TaskPriority.MEDIUM)
        task_id = await queue.add_task(
            TaskData(
                type=params.task_type,
                payload=params.payload,
                brand_context=params.brand_context,
                timeout=params.timeout,
                depends_on=params.depends_on,
            ),
            priority,
        )
        return {"success": True, "taskId": task_id}

    async def get_task_status(params: TaskIdInput) -> dict[str, Any]:
        status = await queue.get_task_status(params.task_id)
        if status is None:
            return {"success": False, "error": f"Task with ID {params.task_id} not found"}
        return {"success": True, "status": status.value}

    async def get_task_result(params: TaskIdInput) -> dict[str, Any]:
        result = await queue.get_task_result(params.task_id)
        if result is None:
            return {"success": False, "error": f"Task with ID {params.task_id} not found"}
        return {"success": True, "result": result.model_dump(mode="json", exclude_none=True)}

    async def register_agent(params: RegisterAgentInput) -> dict[str, Any]:
        logger.info("Registering new agent: %s of type %s", params.name, params.type)
        agent = registry.register_agent(
            AgentRegistrationRequest(
                name=params.name,
                type=params.type,
                capabilities=params.capabilities,
                model_provider=params.model_provider,
                model_name=params.model_name,
            )
        )
        return {"success": True, "agentId": agent.id, "name": agent.name, "type": agent.type.value}

    async def get_agent_stats(params: EmptyInput) -> dict[str, Any]:
        return {"success": True, "stats": registry.get_agent_stats()}

    async def orchestrate_workflow(params: OrchestrateWorkflowInput) -> dict[str, Any]:
        logger.info("Orchestrating workflow of type %s", params.workflow_type)
        task_id = await queue.add_task(
            TaskData(
                type=TaskType.WORKFLOW_EXECUTION,
                payload={
                    "workflowType": params.workflow_type,
                    "steps": [
                        s.model_dump(mode="json", by_alias=True, exclude_none=True)
                        for s in params.steps
                    ],
                    "context": params.context,
                },
                brand_context=params.brand_context,
                timeout=params.timeout,
            ),
            TaskPriority.HIGH,
        )
        return {
            "success": True,
            "message": "Workflow orchestration initiated",
            "taskId": task_id,
            "estimatedSteps": len(params.steps),
        }

    tools = [
        MCPTool("execute_agent", "Execute a specific agent with a prompt", ExecuteAgentInput, execute_agent),
        MCPTool("add_task_to_queue", "Add a task to the orchestration queue", AddTaskInput, add_task_to_queue),
        MCPTool("get_task_status", "Get the status of a task in the queue", TaskIdInput, get_task_status),
        MCPTool("get_task_result", "Get the result of a completed task", TaskIdInput, get_task_result),
        MCPTool(
            "register_agent",
            "Register a new agent with the orchestration layer",
            RegisterAgentInput,
            register_agent,
        ),
        MCPTool("get_agent_stats", "Get statistics about registered agents", EmptyInput, get_agent_stats),
        MCPTool(
            "orchestrate_workflow",
            "Orchestrate a multi-step workflow using multiple agents",
            OrchestrateWorkflowInput,
            orchestrate_workflow,
        ),
    ]
    for tool in tools:
        server.register_tool(tool)

    async def agents_resource(uri: str) -> dict[str, Any]:
        agents = [
            agent.model_dump(mode="json", by_alias=True, exclude={"metadata"})
            for agent in registry.get_all_agents()
        ]
        return {"count": len(agents), "agents": agents}

    async def queue_stats_resource(uri: str) -> dict[str, Any]:
        counts = await queue.get_queue_stats()
        return {f"{state}Count": count for state, count in counts.items()}

    server.register_resource(
        MCPResource("agents", "List of all registered agents and their capabilities", agents_resource)
    )
    server.register_resource(
        MCPResource("queue_stats", "Statistics about the task queue", queue_stats_resource)
    )

    logger.info(
        "MCP server created with %d tools and %d resources",
        len(server.tools), len(server.resources),
    )
    return server
