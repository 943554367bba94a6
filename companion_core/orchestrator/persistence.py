"""
Background persistence queue.

Side effects of a turn (memory writes, trust updates, cache stores) are
submitted as jobs and drained by a single worker task. Submitting never
blocks the caller. Each job produces a ``JobOutcome`` on the queue's
outcome channel; failures are logged and recorded, never raised.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional
import asyncio
import time

import structlog

from ..errors import PersistenceError

logger = structlog.get_logger(__name__)


JobFactory = Callable[[], Awaitable[Any]]


class WorkerStatus(str, Enum):
    """Worker status."""
    IDLE = "idle"
    PROCESSING = "processing"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class PersistenceJob:
    """A unit of deferred work."""
    name: str
    user_id: str
    run: JobFactory
    submitted_at: float = field(default_factory=time.monotonic)


@dataclass
class JobOutcome:
    """Result of one persistence job."""
    name: str
    user_id: str
    succeeded: bool
    result: Any = None
    error: Optional[PersistenceError] = None
    duration_ms: float = 0.0
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class WorkerStats:
    """Worker statistics."""
    jobs_submitted: int = 0
    jobs_processed: int = 0
    jobs_failed: int = 0
    avg_processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobs_submitted": self.jobs_submitted,
            "jobs_processed": self.jobs_processed,
            "jobs_failed": self.jobs_failed,
            "avg_processing_time_ms": round(self.avg_processing_time_ms, 2),
        }


class PersistenceQueue:
    """Fire-and-forget job queue with an observable outcome channel."""

    def __init__(
        self,
        job_timeout_seconds: float = 30.0,
        outcome_history: int = 1000,
        on_failure: Optional[Callable[[JobOutcome], None]] = None,
    ):
        self.job_timeout_seconds = job_timeout_seconds
        self.on_failure = on_failure
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._status = WorkerStatus.STOPPED
        self._outcomes: Deque[JobOutcome] = deque(maxlen=outcome_history)
        self._stats = WorkerStats()

    @property
    def status(self) -> WorkerStatus:
        return self._status

    @property
    def stats(self) -> WorkerStats:
        return self._stats

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue else 0

    async def start(self) -> None:
        """Start the worker task. Idempotent."""
        if self._task is not None and not self._task.done():
            return
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._status = WorkerStatus.IDLE
        self._task = asyncio.create_task(self._run())
        logger.info("Persistence worker started")

    async def stop(self, drain: bool = True) -> None:
        """Stop the worker, optionally finishing queued jobs first."""
        if self._task is None:
            return
        self._status = WorkerStatus.STOPPING
        if drain and self._queue is not None:
            await self._queue.join()

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._status = WorkerStatus.STOPPED
        logger.info("Persistence worker stopped", **self._stats.to_dict())

    def submit(self, name: str, user_id: str, run: JobFactory) -> None:
        """Enqueue a job without waiting for it. Starts the worker lazily."""
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._queue.put_nowait(PersistenceJob(name=name, user_id=user_id, run=run))
        self._stats.jobs_submitted += 1
        if self._task is None or self._task.done():
            self._status = WorkerStatus.IDLE
            self._task = asyncio.create_task(self._run())

    async def drain(self) -> List[JobOutcome]:
        """Wait for all submitted jobs and return their outcomes since the last drain."""
        if self._queue is not None:
            await self._queue.join()
        outcomes = list(self._outcomes)
        self._outcomes.clear()
        return outcomes

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            job = await self._queue.get()
            self._status = WorkerStatus.PROCESSING
            try:
                await self._process(job)
            finally:
                self._queue.task_done()
                self._status = WorkerStatus.IDLE

    async def _process(self, job: PersistenceJob) -> None:
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(job.run(), timeout=self.job_timeout_seconds)
            outcome = JobOutcome(name=job.name, user_id=job.user_id, succeeded=True, result=result)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = PersistenceError(job.name, e)
            outcome = JobOutcome(name=job.name, user_id=job.user_id, succeeded=False, error=error)
            self._stats.jobs_failed += 1
            logger.error(
                "Persistence job failed",
                job=job.name,
                user_id=job.user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self.on_failure is not None:
                self.on_failure(outcome)

        outcome.duration_ms = (time.perf_counter() - start) * 1000
        self._stats.jobs_processed += 1
        n = self._stats.jobs_processed
        self._stats.avg_processing_time_ms += (outcome.duration_ms - self._stats.avg_processing_time_ms) / n
        self._outcomes.append(outcome)
