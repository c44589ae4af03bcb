"""Task queue subsystem: Redis job ledger, workers and the queue facade."""

from switchboard.tasks.models import TaskData, TaskPriority, TaskResult, TaskStatus, TaskType
from switchboard.tasks.queue import TaskQueueSystem

__all__ = ["TaskData", "TaskPriority", "TaskQueueSystem", "TaskResult", "TaskStatus", "TaskType"]
