"""Task queue facade: submit, inspect, cancel and process jobs."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable

from redis.asyncio import Redis

from switchboard.config.models import QueueConfig
from switchboard.tasks.ledger import JobLedger, JobOptions, JobState
from switchboard.tasks.models import TaskData, TaskPriority, TaskResult, TaskStatus, TaskType
from switchboard.tasks.worker import Processor, Worker, type_checked

logger = logging.getLogger("switchboard.tasks.queue")

ConnectionFactory = Callable[[str], Redis]

STATUS_BY_STATE: dict[str, TaskStatus] = {
    JobState.WAITING: TaskStatus.PENDING,
    JobState.DELAYED: TaskStatus.PENDING,
    JobState.ACTIVE: TaskStatus.PROCESSING,
    JobState.COMPLETED: TaskStatus.COMPLETED,
    JobState.FAILED: TaskStatus.FAILED,
    JobState.RETRYING: TaskStatus.RETRYING,
}


def generate_job_id(task_type: str) -> str:
    """``{type}-{epoch ms}-{0..999}``."""
    return f"{task_type}-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def _default_connection(url: str) -> Redis:
    return Redis.from_url(url, decode_responses=True)


class TaskQueueSystem:
    """Priority task queue backed by Redis with one worker per task type."""

    def __init__(
        self,
        config: QueueConfig | None = None,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self._config = config or QueueConfig()
        self._connect = connection_factory or _default_connection
        self._redis = self._connect(self._config.redis_url)
        self.ledger = JobLedger(
            self._redis,
            self._config.queue_name,
            prefix=self._config.key_prefix,
            keep_completed=self._config.keep_completed,
            keep_failed=self._config.keep_failed,
        )
        self._workers: dict[str, Worker] = {}

    @property
    def workers(self) -> dict[str, Worker]:
        return dict(self._workers)

    # -- Submission ------------------------------------------------------------

    async def add_task(
        self,
        task_data: TaskData,
        priority: int = TaskPriority.MEDIUM,
        delay_ms: int = 0,
    ) -> str:
        """Persist a job and return its id without waiting for execution."""
        job_id = generate_job_id(task_data.type)
        while await self.ledger.get_state(job_id) is not None:
            job_id = generate_job_id(task_data.type)

        opts = JobOptions(
            job_id=job_id,
            priority=int(priority),
            delay_ms=delay_ms,
            timeout_ms=(
                self._config.default_timeout_ms if task_data.timeout is None else task_data.timeout
            ),
            attempts=self._config.attempts,
            backoff_delay_ms=self._config.backoff_delay_ms,
        )
        data = task_data.model_dump(mode="json", by_alias=True, exclude_none=True)
        await self.ledger.add(task_data.type.value, data, opts)

        logger.info(
            "Added task %s (type=%s, priority=%d, delay=%dms)",
            job_id, task_data.type.value, opts.priority, delay_ms,
        )
        return job_id

    # -- Inspection ------------------------------------------------------------

    async def get_task_status(self, job_id: str) -> TaskStatus | None:
        """Public status of a job, or ``None`` when it is unknown."""
        state = await self.ledger.get_state(job_id)
        if state is None:
            return None
        return STATUS_BY_STATE.get(state)

    async def get_task_result(self, job_id: str) -> TaskResult | None:
        job = await self.ledger.get_job(job_id)
        if job is None:
            return None
        if job.state is not JobState.COMPLETED:
            return TaskResult(
                success=False,
                error=f"Job is not completed. Current state: {job.state.value}",
            )
        return TaskResult(success=True, data=job.returnvalue)

    async def get_queue_stats(self) -> dict[str, int]:
        return await self.ledger.get_counts()

    # -- Cancellation ----------------------------------------------------------

    async def cancel_task(self, job_id: str) -> bool:
        """Remove a job that has not been claimed yet."""
        removed, state = await self.ledger.remove_pending(job_id)
        if removed:
            logger.info("Cancelled task %s", job_id)
        elif state is not None:
            logger.info("Task %s not cancelled, state is %s", job_id, state)
        return removed

    # -- Workers ---------------------------------------------------------------

    def register_processor(
        self,
        task_type: TaskType | str,
        processor: Processor,
        concurrency: int = 1,
    ) -> Worker:
        """Start a worker that feeds jobs of *task_type* to *processor*."""
        task_type = TaskType(task_type).value
        if task_type in self._workers:
            raise ValueError(f"A processor for {task_type} is already registered")

        connection = self._connect(self._config.redis_url)
        worker = Worker(
            task_type,
            type_checked(task_type, processor),
            self.ledger.bind(connection),
            connection,
            concurrency=concurrency,
            poll_interval=self._config.poll_interval_ms / 1000,
            stalled_interval=self._config.stalled_interval_ms / 1000,
            stalled_grace_ms=self._config.stalled_grace_ms,
        )
        self._workers[task_type] = worker
        worker.start()
        logger.info("Registered processor for %s", task_type)
        return worker

    # -- Lifecycle -------------------------------------------------------------

    async def shutdown(self) -> None:
        """Close workers, then the ledger, then the Redis connection.

        Every step runs even if an earlier one fails; failures are raised
        together as an ``ExceptionGroup`` once all steps have been attempted.
        """
        errors: list[Exception] = []

        for task_type, worker in list(self._workers.items()):
            try:
                await worker.close()
            except Exception as exc:
                logger.exception("Failed to close worker for %s", task_type)
                errors.append(exc)
        self._workers.clear()

        try:
            await self.ledger.close()
        except Exception as exc:
            logger.exception("Failed to close job ledger")
            errors.append(exc)

        try:
            await self._redis.aclose()
        except Exception as exc:
            logger.exception("Failed to close Redis connection")
            errors.append(exc)

        if errors:
            raise ExceptionGroup("Task queue shutdown failed", errors)
        logger.info("Task queue shut down")
