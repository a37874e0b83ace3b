"""Helpers for background job documents polled by clients."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

from db.models import Job

logger = logging.getLogger(__name__)


class JobHandle:
    """Helper to update job progress with optional throttling."""

    def __init__(self, job: Job, *, throttle_ms: int = 1000) -> None:
        self.job = job
        self._throttle_ms = max(0, int(throttle_ms))
        self._last_saved = 0.0

    def _should_write(self, important: bool) -> bool:
        if important or self._throttle_ms == 0:
            return True
        return time.monotonic() - self._last_saved >= (self._throttle_ms / 1000.0)

    async def _save(self, action: str) -> None:
        self.job.updated_at = datetime.now(UTC)
        try:
            await self.job.save()
            self._last_saved = time.monotonic()
        except Exception:
            logger.exception("Failed to %s job %s", action, self.job.id)

    async def update(
        self,
        *,
        stage: str | None = None,
        progress: float | None = None,
        message: str | None = None,
        status: str | None = None,
        metadata_patch: dict[str, Any] | None = None,
        result: dict[str, Any] | None = None,
        error: str | None = None,
        started_at: datetime | None = None,
    ) -> None:
        important = False
        if stage is not None and stage != self.job.stage:
            important = True
            self.job.stage = stage
        if status is not None and status != self.job.status:
            important = True
            self.job.status = status
        if message is not None and message != self.job.message:
            important = True
            self.job.message = message
        if error is not None:
            important = True
            self.job.error = error
        if progress is not None:
            self.job.progress = float(progress)
        if metadata_patch:
            metadata = dict(self.job.metadata or {})
            metadata.update(metadata_patch)
            self.job.metadata = metadata
        if result is not None:
            self.job.result = result
        if started_at is not None:
            self.job.started_at = started_at

        if self._should_write(important):
            await self._save("update")

    async def complete(
        self,
        message: str | None = None,
        result: dict[str, Any] | None = None,
        *,
        stage: str = "completed",
    ) -> None:
        self.job.status = "completed"
        self.job.stage = stage
        self.job.progress = 100.0
        if message is not None:
            self.job.message = message
        if result is not None:
            self.job.result = result
        self.job.completed_at = datetime.now(UTC)
        await self._save("complete")

    async def fail(
        self,
        error: str,
        *,
        message: str | None = None,
        result: dict[str, Any] | None = None,
    ) -> None:
        self.job.status = "failed"
        self.job.stage = "error"
        self.job.error = error
        if message is not None:
            self.job.message = message
        if result is not None:
            self.job.result = result
        self.job.completed_at = datetime.now(UTC)
        await self._save("mark failed")


async def create_job(
    job_type: str,
    *,
    operation_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    status: str = "pending",
    stage: str = "queued",
    message: str = "Queued",
    throttle_ms: int = 1000,
) -> JobHandle:
    now = datetime.now(UTC)
    job = Job(
        job_type=job_type,
        operation_id=operation_id,
        status=status,
        stage=stage,
        message=message,
        created_at=now,
        updated_at=now,
        metadata=metadata or {},
    )
    await job.insert()
    return JobHandle(job, throttle_ms=throttle_ms)


async def find_latest_job(job_type: str) -> Job | None:
    return await Job.find(Job.job_type == job_type).sort("-created_at").first_or_none()


async def find_job(job_type: str, *, job_id: Any | None = None) -> Job | None:
    if job_id is not None:
        return await Job.get(job_id)
    return await find_latest_job(job_type)
