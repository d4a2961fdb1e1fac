"""Background task runner for best-effort side effects.

Ballot acceptance hands follow-up work (the ledger notification) to this
runner so the HTTP response never waits on an external collaborator.
Failures are recorded and logged here; they never reach the caller that
submitted the task.
"""

import asyncio
import enum
import uuid
from collections import deque
from collections.abc import Coroutine
from typing import Any, Protocol

from loguru import logger


class JobStatus(enum.StrEnum):
    """Status of a background job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BackgroundTaskRunner(Protocol):
    """Protocol for background task execution."""

    def submit_task(self, coro: Coroutine[Any, Any, Any], *, name: str = "task") -> str:
        """Submit an async task and return a job ID for tracking."""
        ...

    def get_status(self, job_id: str) -> JobStatus:
        """Return the current status of a submitted job."""
        ...


class InProcessTaskRunner:
    """Runs submitted coroutines with ``asyncio.create_task`` in the current loop."""

    def __init__(self, max_finished: int = 1000) -> None:
        self._jobs: dict[str, JobStatus] = {}
        self._tasks: dict[str, asyncio.Task[Any]] = {}
        self._finished: deque[str] = deque()
        self._max_finished = max_finished

    def _finish(self, job_id: str, status: JobStatus) -> None:
        # Only the most recent finished statuses are kept
        self._jobs[job_id] = status
        self._finished.append(job_id)
        while len(self._finished) > self._max_finished:
            self._jobs.pop(self._finished.popleft(), None)

    def submit_task(self, coro: Coroutine[Any, Any, Any], *, name: str = "task") -> str:
        """Schedule a coroutine for background execution.

        Args:
            coro: The coroutine to execute.
            name: Label used in log lines for this job.

        Returns:
            A job ID string for tracking.
        """
        job_id = str(uuid.uuid4())
        self._jobs[job_id] = JobStatus.PENDING

        async def _run() -> None:
            self._jobs[job_id] = JobStatus.RUNNING
            try:
                await coro
            except Exception as exc:
                self._finish(job_id, JobStatus.FAILED)
                logger.warning("Background job {} ({}) failed: {}", job_id, name, exc)
            else:
                self._finish(job_id, JobStatus.COMPLETED)
            finally:
                self._tasks.pop(job_id, None)

        self._tasks[job_id] = asyncio.create_task(_run(), name=f"{name}:{job_id}")
        return job_id

    def get_status(self, job_id: str) -> JobStatus:
        """Get the current status of a background job.

        Statuses of finished jobs are kept for the most recent ``max_finished`` jobs only.

        Raises:
            KeyError: If the job ID is not found.
        """
        return self._jobs[job_id]

    @property
    def pending_count(self) -> int:
        """Number of jobs that have not finished yet."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every submitted job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)


# Singleton instance for the application
task_runner = InProcessTaskRunner()
