"""Worker pool entry: a concurrent consumer bound to one task type."""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from redis.asyncio import Redis

from switchboard.config.constants import DEFAULT_STALLED_GRACE_MS
from switchboard.tasks.ledger import Job, JobLedger, JobState

logger = logging.getLogger("switchboard.tasks.worker")

Processor = Callable[[Job], Awaitable[Any]]

RECORD_ATTEMPTS = 3


class TaskTypeMismatchError(RuntimeError):
    """A worker was handed a job of a type it does not process."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Job type mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


def type_checked(task_type: str, processor: Processor) -> Processor:
    """Wrap *processor* so it rejects jobs whose type is not *task_type*."""

    async def _wrapper(job: Job) -> Any:
        job_type = job.data.get("type", job.name)
        if job_type != task_type:
            raise TaskTypeMismatchError(task_type, job_type)
        return await processor(job)

    return _wrapper


class Worker:
    """Claims jobs of one type from the ledger and runs them through a processor.

    The worker owns *connection* (opened for it by the queue) and closes it in
    :meth:`close` after in-flight jobs have drained.
    """

    def __init__(
        self,
        task_type: str,
        processor: Processor,
        ledger: JobLedger,
        connection: Redis,
        *,
        concurrency: int = 1,
        poll_interval: float = 0.2,
        stalled_interval: float = 30.0,
        stalled_grace_ms: int = DEFAULT_STALLED_GRACE_MS,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.task_type = task_type
        self.concurrency = concurrency
        self._processor = processor
        self._ledger = ledger
        self._connection = connection
        self._poll_interval = poll_interval
        self._stalled_interval = stalled_interval
        self._stalled_grace_ms = stalled_grace_ms
        self._next_stalled_check = 0.0
        self._slots = asyncio.Semaphore(concurrency)
        self._running: set[asyncio.Task] = set()
        self._loop_task: asyncio.Task | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._loop_task = asyncio.create_task(
            self._poll_loop(), name=f"worker-{self.task_type}"
        )
        logger.info(
            "Worker for %s started (concurrency=%d)", self.task_type, self.concurrency
        )

    async def close(self) -> None:
        """Stop claiming, wait for in-flight jobs, then close the connection."""
        logger.info("Closing worker for %s", self.task_type)
        self._stopping.set()
        if self._loop_task is not None:
            await self._loop_task
            self._loop_task = None
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
        await self._connection.aclose()

    # -- Internal --------------------------------------------------------------

    async def _poll_loop(self) -> None:
        while not self._stopping.is_set():
            await self._slots.acquire()
            if self._stopping.is_set():
                self._slots.release()
                break
            try:
                await self._ledger.promote_delayed(self.task_type)
                await self._check_stalled()
                job = await self._ledger.claim(self.task_type)
            except Exception:
                self._slots.release()
                logger.exception("Worker for %s failed to claim a job", self.task_type)
                await self._idle()
                continue

            if job is None:
                self._slots.release()
                await self._idle()
                continue

            task = asyncio.create_task(self._run(job), name=f"job-{job.id}")
            self._running.add(task)
            task.add_done_callback(self._running.discard)

    async def _idle(self) -> None:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stopping.wait(), timeout=self._poll_interval)

    async def _check_stalled(self) -> None:
        now = time.monotonic()
        if now < self._next_stalled_check:
            return
        self._next_stalled_check = now + self._stalled_interval
        await self._ledger.recover_stalled(self.task_type, self._stalled_grace_ms)

    async def _run(self, job: Job) -> None:
        try:
            logger.debug("Processing job %s (%s)", job.id, job.name)
            try:
                # A non-positive timeout means no limit
                limit = job.timeout_ms / 1000 if job.timeout_ms > 0 else None
                result = await asyncio.wait_for(self._processor(job), timeout=limit)
            except asyncio.TimeoutError:
                record = functools.partial(
                    self._on_failed, job, f"Job timed out after {job.timeout_ms}ms"
                )
            except Exception as exc:
                record = functools.partial(self._on_failed, job, str(exc) or type(exc).__name__)
            else:
                record = functools.partial(self._on_completed, job, result)
            await self._record(job, record)
        finally:
            self._slots.release()

    async def _record(self, job: Job, record: Callable[[], Awaitable[None]]) -> None:
        """Write a job outcome, retrying transient ledger errors.

        If every attempt fails the job stays active until stalled recovery
        fails it back through the retry policy.
        """
        for attempt in range(1, RECORD_ATTEMPTS + 1):
            try:
                await record()
                return
            except Exception:
                if attempt == RECORD_ATTEMPTS:
                    logger.exception(
                        "Worker for %s could not record outcome of job %s",
                        self.task_type, job.id,
                    )
                    return
                logger.warning(
                    "Recording outcome of job %s failed (attempt %d/%d)",
                    job.id, attempt, RECORD_ATTEMPTS, exc_info=True,
                )
                await asyncio.sleep(self._poll_interval)

    async def _on_completed(self, job: Job, result: Any) -> None:
        if await self._ledger.complete(job, result):
            logger.info("Job %s completed", job.id)
        else:
            logger.warning("Job %s is no longer active, result dropped", job.id)

    async def _on_failed(self, job: Job, reason: str) -> None:
        state = await self._ledger.fail(job, reason)
        if state is None:
            logger.warning("Job %s is no longer active, failure dropped: %s", job.id, reason)
        elif state is JobState.RETRYING:
            logger.warning(
                "Job %s failed (attempt %d/%d), retrying: %s",
                job.id, job.attempts_made + 1, job.max_attempts, reason,
            )
        else:
            logger.error("Job %s failed: %s", job.id, reason)
