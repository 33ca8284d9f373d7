"""Durable SQLite-backed stage queues with leases.

Jobs move waiting -> active -> completed, or back to waiting on a retryable
failure, or to dead once attempts run out. A job whose lease expires while
active is claimable again, which is how a crashed worker's job gets retried.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import aiosqlite

from draftsmith.errors import NotFoundError, PreconditionError
from draftsmith.models import JobRecord, JobStatus, QueuesConfig
from draftsmith.utils.structured_log import log_job_event

logger = logging.getLogger(__name__)

_IN_FLIGHT = (JobStatus.WAITING.value, JobStatus.ACTIVE.value)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_job(row: Any) -> JobRecord:
    return JobRecord(
        id=int(row["id"]),
        queue=row["queue"],
        name=row["name"],
        payload=json.loads(row["payload"]),
        status=JobStatus(row["status"]),
        attempts=int(row["attempts"]),
        max_attempts=int(row["max_attempts"]),
        progress=int(row["progress"]),
        lock_token=row["lock_token"],
        locked_until=row["locked_until"],
        available_at=float(row["available_at"]),
        last_error=row["last_error"],
        dedup_key=row["dedup_key"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        finished_at=row["finished_at"],
    )


class JobQueue:
    """All stage queues share one table, partitioned by the ``queue`` column."""

    def __init__(
        self,
        db: aiosqlite.Connection,
        queues: Optional[QueuesConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.db = db
        self.queues = queues or QueuesConfig()
        self._clock = clock
        self._lock = asyncio.Lock()

    async def add(
        self,
        queue: str,
        name: str,
        payload: Dict[str, Any],
        dedup_key: Optional[str] = None,
        max_attempts: Optional[int] = None,
        delay_seconds: float = 0.0,
    ) -> JobRecord:
        """Enqueue a job. With ``dedup_key`` an in-flight job carrying the same key is returned instead."""
        if max_attempts is None:
            max_attempts = self.queues.for_stage(queue).max_attempts
        while True:
            now = _now_iso()
            async with self._lock:
                cursor = await self.db.execute(
                    """
                    INSERT INTO jobs
                        (queue, name, payload, status, attempts, max_attempts, progress,
                         available_at, dedup_key, created_at, updated_at)
                    SELECT ?, ?, ?, 'waiting', 0, ?, 0, ?, ?, ?, ?
                    WHERE ? IS NULL OR NOT EXISTS (
                        SELECT 1 FROM jobs WHERE dedup_key = ? AND status IN (?, ?)
                    )
                    """,
                    (
                        queue,
                        name,
                        json.dumps(payload),
                        max_attempts,
                        self._clock() + delay_seconds,
                        dedup_key,
                        now,
                        now,
                        dedup_key,
                        dedup_key,
                        *_IN_FLIGHT,
                    ),
                )
                await self.db.commit()
                inserted_id = cursor.lastrowid if cursor.rowcount > 0 else None

            if inserted_id is not None:
                job = await self.get(inserted_id)
                log_job_event(queue, "enqueue", job_id=job.id, name=name, dedup_key=dedup_key)
                return job

            rows = list(
                await self.db.execute_fetchall(
                    "SELECT * FROM jobs WHERE dedup_key = ? AND status IN (?, ?) ORDER BY id LIMIT 1",
                    (dedup_key, *_IN_FLIGHT),
                )
            )
            if not rows:
                # the in-flight job settled between the insert and the read
                continue
            existing = _row_to_job(rows[0])
            logger.info(f"Job {existing.id} already in flight for {dedup_key}; not enqueuing again")
            log_job_event(queue, "dedup", job_id=existing.id, dedup_key=dedup_key)
            return existing

    async def claim(self, queue: str, lease_seconds: float) -> Optional[JobRecord]:
        """Atomically take the oldest runnable job and lease it to the caller.

        Runnable means waiting and due, or active with an expired lease. A
        reclaimed job that has already used its attempts is dead-lettered
        and the next candidate is tried.
        """
        while True:
            now = self._clock()
            token = uuid.uuid4().hex
            async with self._lock:
                rows = await self.db.execute_fetchall(
                    """
                    UPDATE jobs
                    SET status = 'active', attempts = attempts + 1, lock_token = ?,
                        locked_until = ?, updated_at = ?
                    WHERE id = (
                        SELECT id FROM jobs
                        WHERE queue = ? AND (
                            (status = 'waiting' AND available_at <= ?)
                            OR (status = 'active' AND locked_until < ?)
                        )
                        ORDER BY id
                        LIMIT 1
                    )
                    RETURNING *
                    """,
                    (token, now + lease_seconds, _now_iso(), queue, now, now),
                )
                await self.db.commit()
            rows = list(rows)
            if not rows:
                return None
            job = _row_to_job(rows[0])
            if job.attempts > job.max_attempts:
                logger.warning(
                    f"Job {job.id} on {queue} lost its lease after {job.max_attempts} attempts; "
                    "dead-lettering"
                )
                await self.fail(job, "lease expired with no attempts left", retryable=False)
                continue
            log_job_event(queue, "claim", job_id=job.id, attempt=job.attempts)
            return job

    async def renew(self, job: JobRecord, lease_seconds: float) -> bool:
        """Extend the lease. False means another worker owns the job now."""
        async with self._lock:
            cursor = await self.db.execute(
                """
                UPDATE jobs SET locked_until = ?, updated_at = ?
                WHERE id = ? AND lock_token = ? AND status = 'active'
                """,
                (self._clock() + lease_seconds, _now_iso(), job.id, job.lock_token),
            )
            await self.db.commit()
        return cursor.rowcount > 0

    async def update_progress(self, job: JobRecord, percent: int) -> bool:
        percent = max(0, min(100, int(percent)))
        async with self._lock:
            cursor = await self.db.execute(
                """
                UPDATE jobs SET progress = ?, updated_at = ?
                WHERE id = ? AND lock_token = ? AND status = 'active'
                """,
                (percent, _now_iso(), job.id, job.lock_token),
            )
            await self.db.commit()
        if cursor.rowcount > 0:
            job.progress = percent
            log_job_event(job.queue, "progress", job_id=job.id, progress=percent)
            return True
        return False

    async def complete(self, job: JobRecord) -> bool:
        now = _now_iso()
        async with self._lock:
            cursor = await self.db.execute(
                """
                UPDATE jobs
                SET status = 'completed', lock_token = NULL, locked_until = NULL,
                    updated_at = ?, finished_at = ?
                WHERE id = ? AND lock_token = ? AND status = 'active'
                """,
                (now, now, job.id, job.lock_token),
            )
            await self.db.commit()
        if cursor.rowcount == 0:
            logger.warning(f"Job {job.id} lease lost before completion")
            return False
        log_job_event(job.queue, "complete", job_id=job.id, attempt=job.attempts)
        return True

    async def fail(
        self,
        job: JobRecord,
        error: str,
        retryable: bool = True,
        backoff_seconds: Optional[float] = None,
    ) -> Optional[JobStatus]:
        """Record a failed attempt.

        Returns the job's new status (waiting for a scheduled retry, dead when
        attempts are exhausted or the error is not retryable) or None when the
        caller no longer holds the lease.
        """
        if backoff_seconds is None:
            backoff_seconds = self.queues.for_stage(job.queue).backoff_seconds
        now = _now_iso()
        if not retryable or job.attempts >= job.max_attempts:
            status = JobStatus.DEAD
            sql = """
                UPDATE jobs
                SET status = 'dead', last_error = ?, lock_token = NULL, locked_until = NULL,
                    updated_at = ?, finished_at = ?
                WHERE id = ? AND lock_token = ? AND status = 'active'
            """
            params: tuple = (error, now, now, job.id, job.lock_token)
        else:
            status = JobStatus.WAITING
            delay = backoff_seconds * (2 ** max(job.attempts - 1, 0))
            sql = """
                UPDATE jobs
                SET status = 'waiting', last_error = ?, lock_token = NULL, locked_until = NULL,
                    available_at = ?, updated_at = ?
                WHERE id = ? AND lock_token = ? AND status = 'active'
            """
            params = (error, self._clock() + delay, now, job.id, job.lock_token)
        async with self._lock:
            cursor = await self.db.execute(sql, params)
            await self.db.commit()
        if cursor.rowcount == 0:
            logger.warning(f"Job {job.id} lease lost before failure could be recorded")
            return None
        action = "dead" if status == JobStatus.DEAD else "retry"
        log_job_event(job.queue, action, job_id=job.id, attempt=job.attempts, error=error)
        return status

    async def get(self, job_id: int) -> JobRecord:
        rows = list(await self.db.execute_fetchall("SELECT * FROM jobs WHERE id = ?", (job_id,)))
        if not rows:
            raise NotFoundError(f"Job {job_id} not found")
        return _row_to_job(rows[0])

    async def counts(self, queue: str) -> Dict[str, int]:
        result = {status.value: 0 for status in JobStatus}
        rows = await self.db.execute_fetchall(
            "SELECT status, COUNT(*) AS n FROM jobs WHERE queue = ? GROUP BY status", (queue,)
        )
        for row in rows:
            result[row["status"]] = int(row["n"])
        return result

    async def list_for_draft(self, draft_id: str) -> List[JobRecord]:
        rows = await self.db.execute_fetchall(
            "SELECT * FROM jobs WHERE json_extract(payload, '$.draft_id') = ? ORDER BY id",
            (draft_id,),
        )
        return [_row_to_job(row) for row in rows]

    async def list_dead(self, queue: Optional[str] = None) -> List[JobRecord]:
        if queue is None:
            rows = await self.db.execute_fetchall(
                "SELECT * FROM jobs WHERE status = 'dead' ORDER BY id"
            )
        else:
            rows = await self.db.execute_fetchall(
                "SELECT * FROM jobs WHERE status = 'dead' AND queue = ? ORDER BY id", (queue,)
            )
        return [_row_to_job(row) for row in rows]

    async def retry_dead(self, job_id: int) -> JobRecord:
        """Put a dead job back on its queue with a fresh attempt budget."""
        job = await self.get(job_id)
        if job.status != JobStatus.DEAD:
            raise PreconditionError(f"Job {job_id} is {job.status.value}, not dead")
        async with self._lock:
            cursor = await self.db.execute(
                """
                UPDATE jobs
                SET status = 'waiting', attempts = 0, progress = 0, available_at = ?,
                    updated_at = ?, finished_at = NULL
                WHERE id = ? AND status = 'dead' AND (
                    dedup_key IS NULL OR NOT EXISTS (
                        SELECT 1 FROM jobs AS other
                        WHERE other.dedup_key = jobs.dedup_key AND other.status IN (?, ?)
                    )
                )
                """,
                (self._clock(), _now_iso(), job_id, *_IN_FLIGHT),
            )
            await self.db.commit()
        if cursor.rowcount == 0:
            raise PreconditionError(
                f"Job {job_id} cannot be retried: another job for {job.dedup_key} is in flight"
            )
        log_job_event(job.queue, "requeue", job_id=job_id)
        return await self.get(job_id)
