"""Stage worker loop: claim, renew the lease while running, then settle the job."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from draftsmith.errors import (
    NotFoundError,
    PayloadValidationError,
    PreconditionError,
    StaleJobError,
)
from draftsmith.jobs.queue import JobQueue
from draftsmith.models import JobRecord, JobStatus, StageQueueConfig
from draftsmith.utils.structured_log import bind_job, clear_job, log_job_event

logger = logging.getLogger(__name__)

JobHandler = Callable[[JobRecord], Awaitable[Any]]


class StageWorker:
    """Consumes one stage queue, one job at a time.

    ``stop()`` lets the in-flight job finish before ``run()`` returns.
    """

    def __init__(
        self,
        queue: JobQueue,
        stage: str,
        handler: JobHandler,
        config: StageQueueConfig,
        poll_interval: float = 1.0,
    ):
        self.queue = queue
        self.stage = stage
        self.handler = handler
        self.config = config
        self.poll_interval = poll_interval
        self._stopping = asyncio.Event()
        self.processed = 0

    def stop(self) -> None:
        self._stopping.set()

    @property
    def stopping(self) -> bool:
        return self._stopping.is_set()

    async def run(self) -> None:
        logger.info(f"Worker for {self.stage} queue started")
        while not self._stopping.is_set():
            job = await self.run_once()
            if job is None:
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass
        logger.info(f"Worker for {self.stage} queue stopped after {self.processed} jobs")

    async def _renew_loop(self, job: JobRecord) -> None:
        try:
            while True:
                await asyncio.sleep(self.config.renew_seconds)
                if not await self.queue.renew(job, self.config.lease_seconds):
                    logger.warning(f"Job {job.id}: lease lost to another worker")
                    return
        except asyncio.CancelledError:
            pass

    async def run_once(self) -> Optional[JobRecord]:
        """Claim and process at most one job. Returns the job, or None when the queue is idle."""
        job = await self.queue.claim(self.stage, self.config.lease_seconds)
        if job is None:
            return None

        draft_id = str(job.payload.get("draft_id", ""))
        bind_job(job.id, draft_id, self.stage)
        logger.info(
            f"Job {job.id} ({job.name}) claimed for draft {draft_id}, "
            f"attempt {job.attempts}/{job.max_attempts}"
        )
        renewer = asyncio.create_task(self._renew_loop(job))
        try:
            await self.handler(job)
        except StaleJobError as exc:
            logger.warning(f"Job {job.id} skipped: {exc}")
            log_job_event(self.stage, "skip", job_id=job.id, reason=str(exc))
            await self.queue.complete(job)
            job.status = JobStatus.COMPLETED
        except (PayloadValidationError, NotFoundError, PreconditionError) as exc:
            logger.error(f"Job {job.id} failed permanently: {exc}")
            job.status = await self.queue.fail(job, str(exc), retryable=False) or job.status
        except Exception as exc:
            logger.error(f"Job {job.id} failed on attempt {job.attempts}: {exc}", exc_info=True)
            job.status = (
                await self.queue.fail(job, f"{type(exc).__name__}: {exc}", retryable=True)
                or job.status
            )
        else:
            if await self.queue.complete(job):
                job.status = JobStatus.COMPLETED
        finally:
            renewer.cancel()
            await asyncio.gather(renewer, return_exceptions=True)
            clear_job()
            self.processed += 1
        return job
