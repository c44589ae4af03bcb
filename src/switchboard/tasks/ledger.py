"""Redis-backed job ledger with priority ordering, delays, retries and retention.

Key layout (all under ``{prefix}:{queue}``):

- ``job:{id}``        hash with the job record
- ``seq``             submission counter used for FIFO tie-breaking
- ``types``           set of job names seen by this ledger
- ``wait:{name}``     zset of claimable jobs, scored by priority then sequence
- ``delayed:{name}``  zset of delayed/backing-off jobs, scored by ready time (ms)
- ``active``          set of claimed jobs
- ``completed``       zset scored by finish time, trimmed to ``keep_completed``
- ``failed``          zset scored by finish time, trimmed to ``keep_failed``

Claims go through ``ZPOPMIN`` and cancellation through ``ZREM``, so a job is
either handed to exactly one worker or removed, never both. Moves out of the
delayed set and outcome writes for active jobs run as WATCH/MULTI
transactions on the job hash, so a job is never half-moved and a stale
worker cannot overwrite a job that stalled recovery already failed.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError

from switchboard.config.constants import (
    DEFAULT_BACKOFF_DELAY_MS,
    DEFAULT_JOB_ATTEMPTS,
    DEFAULT_JOB_TIMEOUT_MS,
    KEEP_COMPLETED_JOBS,
    KEEP_FAILED_JOBS,
)

logger = logging.getLogger("switchboard.tasks.ledger")

MAX_PRIORITY = 2**21
_SEQ_SPAN = 2**31


class JobState(StrEnum):
    """Broker-level job states."""

    WAITING = "waiting"
    DELAYED = "delayed"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRYING = "retrying"


PENDING_STATES = frozenset({JobState.WAITING, JobState.DELAYED})


class LedgerClosedError(RuntimeError):
    """Raised when an operation is attempted on a closed ledger."""


@dataclass
class JobOptions:
    """Per-job scheduling options."""

    job_id: str
    priority: int = 0
    delay_ms: int = 0
    timeout_ms: int = DEFAULT_JOB_TIMEOUT_MS
    attempts: int = DEFAULT_JOB_ATTEMPTS
    backoff_delay_ms: int = DEFAULT_BACKOFF_DELAY_MS


@dataclass
class Job:
    """A job record as stored in the ledger."""

    id: str
    name: str
    data: dict[str, Any]
    priority: int
    delay_ms: int
    timeout_ms: int
    max_attempts: int
    backoff_delay_ms: int
    attempts_made: int
    state: JobState
    timestamp: int
    seq: int = 0
    processed_on: int | None = None
    finished_on: int | None = None
    returnvalue: Any = None
    failed_reason: str | None = None

    @classmethod
    def from_hash(cls, raw: dict[str, str]) -> "Job":
        def _int(key: str, default: int | None = None) -> int | None:
            value = raw.get(key)
            return int(value) if value not in (None, "") else default

        returnvalue = raw.get("returnvalue")
        return cls(
            id=raw["id"],
            name=raw["name"],
            data=json.loads(raw.get("data") or "{}"),
            priority=_int("priority", 0),
            delay_ms=_int("delay", 0),
            timeout_ms=_int("timeout", DEFAULT_JOB_TIMEOUT_MS),
            max_attempts=_int("max_attempts", DEFAULT_JOB_ATTEMPTS),
            backoff_delay_ms=_int("backoff_delay", DEFAULT_BACKOFF_DELAY_MS),
            attempts_made=_int("attempts_made", 0),
            state=JobState(raw["state"]),
            timestamp=_int("timestamp", 0),
            seq=_int("seq", 0),
            processed_on=_int("processed_on"),
            finished_on=_int("finished_on"),
            returnvalue=json.loads(returnvalue) if returnvalue else None,
            failed_reason=raw.get("failed_reason") or None,
        )


def _now_ms() -> int:
    return int(time.time() * 1000)


def _priority_score(priority: int, seq: int) -> int:
    """Lower score pops first: higher priority, then earlier submission."""
    return (MAX_PRIORITY - priority) * _SEQ_SPAN + (seq % _SEQ_SPAN)


class JobLedger:
    """Durable job store on top of a Redis connection.

    A ledger does not own its connection; whoever created the connection
    closes it. Use :meth:`bind` to get a ledger view on another connection
    (worker pool entries each use their own).
    """

    def __init__(
        self,
        connection: Redis,
        name: str,
        *,
        prefix: str = "switchboard",
        keep_completed: int = KEEP_COMPLETED_JOBS,
        keep_failed: int = KEEP_FAILED_JOBS,
    ) -> None:
        self._redis = connection
        self.name = name
        self._prefix = prefix
        self._keep_completed = keep_completed
        self._keep_failed = keep_failed
        self._closed = False

    def bind(self, connection: Redis) -> JobLedger:
        """Return a ledger over the same queue using *connection*."""
        return JobLedger(
            connection,
            self.name,
            prefix=self._prefix,
            keep_completed=self._keep_completed,
            keep_failed=self._keep_failed,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Stop accepting operations. The connection is left open."""
        self._closed = True
        logger.debug("Ledger %s closed", self.name)

    # -- Keys ------------------------------------------------------------------

    def _key(self, *parts: str) -> str:
        return ":".join((self._prefix, self.name, *parts))

    def _job_key(self, job_id: str) -> str:
        return self._key("job", job_id)

    def _wait_key(self, name: str) -> str:
        return self._key("wait", name)

    def _delayed_key(self, name: str) -> str:
        return self._key("delayed", name)

    def _check_open(self) -> None:
        if self._closed:
            raise LedgerClosedError(f"Ledger {self.name} is closed")

    # -- Submission --------------------------------------------------------------

    async def add(self, name: str, data: dict[str, Any], opts: JobOptions) -> Job:
        """Persist a new job. Returns the existing record if the id is taken."""
        self._check_open()
        if not 0 <= opts.priority <= MAX_PRIORITY:
            raise ValueError(f"priority must be between 0 and {MAX_PRIORITY}, got {opts.priority}")

        existing = await self.get_job(opts.job_id)
        if existing is not None:
            logger.warning("Job %s already exists, not re-adding", opts.job_id)
            return existing

        now = _now_ms()
        seq = await self._redis.incr(self._key("seq"))
        state = JobState.DELAYED if opts.delay_ms > 0 else JobState.WAITING
        fields = {
            "id": opts.job_id,
            "name": name,
            "data": json.dumps(data, default=str),
            "priority": opts.priority,
            "delay": opts.delay_ms,
            "timeout": opts.timeout_ms,
            "max_attempts": opts.attempts,
            "backoff_delay": opts.backoff_delay_ms,
            "attempts_made": 0,
            "state": state.value,
            "timestamp": now,
            "seq": seq,
        }

        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(self._job_key(opts.job_id), mapping=fields)
            pipe.sadd(self._key("types"), name)
            if state is JobState.DELAYED:
                pipe.zadd(self._delayed_key(name), {opts.job_id: now + opts.delay_ms})
            else:
                pipe.zadd(self._wait_key(name), {opts.job_id: _priority_score(opts.priority, seq)})
            await pipe.execute()

        return Job.from_hash({k: str(v) for k, v in fields.items()})

    # -- Inspection ------------------------------------------------------------

    async def get_job(self, job_id: str) -> Job | None:
        self._check_open()
        raw = await self._redis.hgetall(self._job_key(job_id))
        if not raw:
            return None
        return Job.from_hash(raw)

    async def get_state(self, job_id: str) -> str | None:
        """Raw broker state of a job, or ``None`` if it does not exist."""
        self._check_open()
        return await self._redis.hget(self._job_key(job_id), "state")

    async def get_counts(self) -> dict[str, int]:
        """Number of jobs per broker state across all job names."""
        self._check_open()
        names = await self._redis.smembers(self._key("types"))
        waiting = delayed = 0
        for name in names:
            waiting += await self._redis.zcard(self._wait_key(name))
            delayed += await self._redis.zcard(self._delayed_key(name))
        return {
            "waiting": waiting,
            "delayed": delayed,
            "active": await self._redis.scard(self._key("active")),
            "completed": await self._redis.zcard(self._key("completed")),
            "failed": await self._redis.zcard(self._key("failed")),
        }

    # -- Cancellation ----------------------------------------------------------

    async def remove_pending(self, job_id: str) -> tuple[bool, str | None]:
        """Remove a job only if it is still waiting or delayed.

        Returns ``(removed, state_seen)``.
        """
        self._check_open()
        raw = await self._redis.hmget(self._job_key(job_id), "state", "name")
        state, name = raw[0], raw[1]
        if state is None:
            return False, None
        if state == JobState.WAITING:
            removed = await self._redis.zrem(self._wait_key(name), job_id)
        elif state == JobState.DELAYED:
            removed = await self._redis.zrem(self._delayed_key(name), job_id)
        else:
            return False, state

        if not removed:
            # Claimed or promoted between the state read and the removal
            return False, await self.get_state(job_id)

        await self._redis.delete(self._job_key(job_id))
        return True, state

    # -- Worker side -----------------------------------------------------------

    async def promote_delayed(self, name: str) -> int:
        """Move due delayed/retrying jobs of *name* back to waiting."""
        self._check_open()
        due = await self._redis.zrangebyscore(self._delayed_key(name), "-inf", _now_ms())
        promoted = 0
        for job_id in due:
            if await self._move_to_wait(name, job_id):
                promoted += 1
        return promoted

    async def _move_to_wait(self, name: str, job_id: str) -> bool:
        """Atomically move one job from the delayed set to the wait set.

        Watching the delayed set as well aborts the move if a cancellation
        removed the member in the meantime.
        """
        delayed_key = self._delayed_key(name)
        job_key = self._job_key(job_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(delayed_key, job_key)
                if await pipe.zscore(delayed_key, job_id) is None:
                    return False  # another consumer got there first
                priority, seq = await pipe.hmget(job_key, "priority", "seq")
                pipe.multi()
                pipe.zrem(delayed_key, job_id)
                if priority is not None:
                    pipe.hset(job_key, "state", JobState.WAITING.value)
                    pipe.zadd(
                        self._wait_key(name),
                        {job_id: _priority_score(int(priority), int(seq or 0))},
                    )
                await pipe.execute()
            except WatchError:
                return False
        return priority is not None

    async def claim(self, name: str) -> Job | None:
        """Pop the highest-priority waiting job of *name* and mark it active."""
        self._check_open()
        popped = await self._redis.zpopmin(self._wait_key(name), 1)
        if not popped:
            return None
        job_id = popped[0][0]
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.sadd(self._key("active"), job_id)
            pipe.hset(
                self._job_key(job_id),
                mapping={"state": JobState.ACTIVE.value, "processed_on": _now_ms()},
            )
            await pipe.execute()
        return await self.get_job(job_id)

    async def _finish_active(self, job_id: str, queue: Callable[[Pipeline], None]) -> bool:
        """Run the commands *queue* adds in one transaction, only while the job is active.

        Returns ``False`` when the job left the active state first, e.g. after
        stalled recovery already failed it.
        """
        job_key = self._job_key(job_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(job_key)
                if await pipe.hget(job_key, "state") != JobState.ACTIVE:
                    return False
                pipe.multi()
                queue(pipe)
                await pipe.execute()
            except WatchError:
                return False
        return True

    async def complete(self, job: Job, returnvalue: Any) -> bool:
        self._check_open()
        now = _now_ms()

        def _queue(pipe: Pipeline) -> None:
            pipe.srem(self._key("active"), job.id)
            pipe.hset(
                self._job_key(job.id),
                mapping={
                    "state": JobState.COMPLETED.value,
                    "finished_on": now,
                    "returnvalue": json.dumps(returnvalue, default=str),
                },
            )
            pipe.zadd(self._key("completed"), {job.id: now})

        if not await self._finish_active(job.id, _queue):
            return False
        await self._trim(self._key("completed"), self._keep_completed)
        return True

    async def fail(self, job: Job, reason: str) -> JobState | None:
        """Record a failed attempt; schedules a retry while attempts remain.

        Returns the resulting state, or ``None`` if the job was no longer active.
        """
        self._check_open()
        now = _now_ms()
        attempts_made = job.attempts_made + 1
        retry = attempts_made < job.max_attempts

        def _queue(pipe: Pipeline) -> None:
            pipe.srem(self._key("active"), job.id)
            fields: dict[str, Any] = {"attempts_made": attempts_made, "failed_reason": reason}
            if retry:
                backoff = job.backoff_delay_ms * 2 ** (attempts_made - 1)
                fields["state"] = JobState.RETRYING.value
                pipe.zadd(self._delayed_key(job.name), {job.id: now + backoff})
            else:
                fields.update(state=JobState.FAILED.value, finished_on=now)
                pipe.zadd(self._key("failed"), {job.id: now})
            pipe.hset(self._job_key(job.id), mapping=fields)

        if not await self._finish_active(job.id, _queue):
            return None
        if retry:
            return JobState.RETRYING
        await self._trim(self._key("failed"), self._keep_failed)
        return JobState.FAILED

    async def recover_stalled(self, name: str, grace_ms: int) -> int:
        """Fail active jobs of *name* that outlived their timeout by *grace_ms*.

        Covers workers that died or could not record an outcome. The stalled
        attempt goes through the normal retry policy. Jobs without a timeout
        are never considered stalled.
        """
        self._check_open()
        now = _now_ms()
        recovered = 0
        for job_id in await self._redis.smembers(self._key("active")):
            job = await self.get_job(job_id)
            if job is None:
                await self._redis.srem(self._key("active"), job_id)
                continue
            if job.name != name or job.state is not JobState.ACTIVE or job.timeout_ms <= 0:
                continue
            if job.processed_on is None or now - job.processed_on < job.timeout_ms + grace_ms:
                continue
            state = await self.fail(job, "Job stalled")
            if state is not None:
                logger.warning("Recovered stalled job %s, now %s", job_id, state)
                recovered += 1
        return recovered

    async def _trim(self, key: str, keep: int) -> None:
        """Evict the oldest finished jobs beyond *keep*."""
        stale = await self._redis.zrange(key, 0, -(keep + 1))
        if not stale:
            return
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zrem(key, *stale)
            pipe.delete(*(self._job_key(job_id) for job_id in stale))
            await pipe.execute()
        logger.debug("Evicted %d jobs from %s", len(stale), key)
