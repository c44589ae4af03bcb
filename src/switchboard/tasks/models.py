"""Pydantic models and enums for the task queue."""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TaskType(StrEnum):
    """Task kinds; each one is consumed by its own worker pool entry."""

    CONTENT_GENERATION = "content_generation"
    CONTEXT_VALIDATION = "context_validation"
    ASSET_MANAGEMENT = "asset_management"
    ANALYTICS_PROCESSING = "analytics_processing"
    WORKFLOW_EXECUTION = "workflow_execution"
    AGENT_COMMUNICATION = "agent_communication"


class TaskPriority(IntEnum):
    """Named priority levels. Higher values are claimed first."""

    LOW = 1
    MEDIUM = 5
    HIGH = 10
    CRITICAL = 20


class TaskStatus(StrEnum):
    """Public lifecycle states reported by the facade."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRYING = "retrying"
    CANCELLED = "cancelled"


class TaskData(BaseModel):
    """What a caller submits to the queue."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: TaskType
    payload: dict[str, Any] = Field(default_factory=dict)
    brand_context: str | None = None
    timeout: int | None = None  # ms
    depends_on: list[str] | None = None


class TaskResult(BaseModel):
    """Outcome of a result lookup for an existing job."""

    success: bool
    data: Any = None
    error: str | None = None


class WorkflowStep(BaseModel):
    """One step of a workflow run by the ``workflow_execution`` processor."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    agent_type: str
    instruction: str
    output_key: str
    condition: str | None = None


class WorkflowPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    workflow_type: str
    steps: list[WorkflowStep] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)


PRIORITY_BY_NAME: dict[str, TaskPriority] = {
    "low": TaskPriority.LOW,
    "medium": TaskPriority.MEDIUM,
    "high": TaskPriority.HIGH,
    "critical": TaskPriority.CRITICAL,
}
