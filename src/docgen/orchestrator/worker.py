"""Background worker for generation jobs.

``GenerationWorker`` decouples accepting a generation request from running
it. ``submit`` claims the project and creates the job right away, so a
concurrent second request is rejected at submission time, then queues the
job. A fixed number of worker tasks drain the queue and run each job to a
terminal state on the shared event loop.
"""

from __future__ import annotations

import asyncio
from uuid import UUID

import structlog

from docgen.database.models.job import GenerationJob
from docgen.orchestrator.orchestrator import Orchestrator

logger = structlog.get_logger(__name__)


class GenerationWorker:
    """Queue-backed runner for generation jobs.

    Attributes:
        orchestrator: Orchestrator that creates and runs jobs.
        concurrency: Number of worker tasks draining the queue.
    """

    def __init__(self, orchestrator: Orchestrator, concurrency: int = 4) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.orchestrator = orchestrator
        self.concurrency = concurrency

        self._queue: asyncio.Queue[UUID] = asyncio.Queue()
        self._workers: list[asyncio.Task[None]] = []
        self._running = False
        self._logger = logger.bind(component="GenerationWorker")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queued(self) -> int:
        """Number of jobs waiting for a worker."""
        return self._queue.qsize()

    async def start(self) -> None:
        """Launch the worker tasks.

        Raises:
            RuntimeError: If the worker is already running.
        """
        if self._running:
            raise RuntimeError("GenerationWorker is already running")

        self._running = True
        self._workers = [
            asyncio.create_task(self._worker_loop(index), name=f"generation-worker-{index}")
            for index in range(self.concurrency)
        ]
        self._logger.info("generation_worker_started", concurrency=self.concurrency)

    async def stop(self) -> None:
        """Stop the worker tasks.

        Jobs still queued stay pending and can be cancelled or re-submitted.
        A job that was mid-run is interrupted and left processing until it
        is cancelled.
        """
        if not self._running:
            self._logger.debug("generation_worker_stop_noop", reason="not running")
            return

        self._running = False
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._logger.info("generation_worker_stopped", still_queued=self._queue.qsize())

    async def submit(self, project_id: UUID, prompt: str) -> GenerationJob:
        """Claim the project, create a pending job and queue it.

        Returns:
            The pending GenerationJob.

        Raises:
            ProjectNotFoundError: If the project does not exist.
            GenerationInProgressError: If another job holds the project.
        """
        job = await self.orchestrator.create_job(project_id, prompt)
        await self._queue.put(job.id)
        self._logger.info("generation_job_queued", job_id=str(job.id), queued=self._queue.qsize())
        return job

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _worker_loop(self, index: int) -> None:
        self._logger.debug("worker_loop_started", worker=index)

        while self._running:
            job_id = await self._queue.get()
            try:
                job = await self.orchestrator.run_job(job_id)
                self._logger.info(
                    "generation_job_finished",
                    worker=index,
                    job_id=str(job_id),
                    status=job.status.value,
                )
            except Exception:
                # The orchestrator already recorded the failure on the job
                self._logger.exception("generation_job_crashed", worker=index, job_id=str(job_id))
            finally:
                self._queue.task_done()
