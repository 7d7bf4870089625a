"""
Sequential render queue.

One worker task pulls jobs in arrival order and runs them one at a time, so
only one browser session exists at any moment. A job is finished, session
teardown included, before the next one is dequeued.

- The queue is bounded: submit() raises QueueFullError instead of dropping.
- Each job runs under a deadline; on expiry the render is cancelled, which
  closes its session, and the caller gets a JOB_TIMEOUT result.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

from .pipeline import RenderPipeline
from .result import ErrorCode, RenderResult

logger = logging.getLogger(__name__)


class QueueFullError(Exception):
    """Raised by RenderQueue.submit when max_size jobs are already pending."""


@dataclass
class _Job:
    dynamic_id: str
    future: asyncio.Future
    enqueued_at: float = field(default_factory=time.monotonic)


class RenderQueue:

    def __init__(self, pipeline: RenderPipeline, max_size: int = 32, job_timeout: float = 60.0):
        self._pipeline = pipeline
        self._job_timeout = job_timeout
        self._queue: asyncio.Queue[_Job] = asyncio.Queue(maxsize=max_size)
        self._worker: asyncio.Task | None = None

    @property
    def depth(self) -> int:
        """Number of jobs waiting to run (the running job is not counted)."""
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> asyncio.Task:
        """Start the worker task. Call from the FastAPI lifespan startup."""
        self._worker = asyncio.create_task(self._run_forever())
        logger.info(
            "[queue] Render worker started (max_size=%d, job_timeout=%.0fs)",
            self._queue.maxsize, self._job_timeout,
        )
        return self._worker

    async def stop(self) -> None:
        """Cancel the worker and any callers still waiting in the queue."""
        if self._worker and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass

        while not self._queue.empty():
            job = self._queue.get_nowait()
            job.future.cancel()
            self._queue.task_done()
        logger.info("[queue] Render worker stopped")

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, dynamic_id: str) -> RenderResult:
        """Enqueue a render and wait for its result."""
        job = _Job(dynamic_id=dynamic_id, future=asyncio.get_running_loop().create_future())
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning("[queue] Rejecting %s: queue full (%d pending)", dynamic_id, self._queue.qsize())
            raise QueueFullError(f"Render queue is full ({self._queue.maxsize} pending)") from None

        logger.debug("[queue] Enqueued %s (depth=%d)", dynamic_id, self._queue.qsize())
        return await job.future

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _run_forever(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job.future.done():
                    # caller went away while waiting
                    logger.info("[queue] Skipping %s: caller no longer waiting", job.dynamic_id)
                    continue
                try:
                    result = await self._run_job(job)
                except asyncio.CancelledError:
                    # worker stopped mid-job; release the waiting caller
                    job.future.cancel()
                    raise
                if not job.future.done():
                    job.future.set_result(result)
            finally:
                self._queue.task_done()

    async def _run_job(self, job: _Job) -> RenderResult:
        waited = time.monotonic() - job.enqueued_at
        logger.info("[queue] Rendering %s (waited %.2fs, %d pending)", job.dynamic_id, waited, self._queue.qsize())
        try:
            return await asyncio.wait_for(self._pipeline.render(job.dynamic_id), timeout=self._job_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "[queue] %s exceeded job deadline of %.0fs, session torn down",
                job.dynamic_id, self._job_timeout,
            )
            return RenderResult.failure(ErrorCode.JOB_TIMEOUT, f"render exceeded {self._job_timeout:.0f}s deadline")
        except Exception as e:
            logger.error("[queue] %s failed outside the pipeline: %s", job.dynamic_id, e, exc_info=True)
            return RenderResult.failure(ErrorCode.INTERNAL_ERROR, str(e))
