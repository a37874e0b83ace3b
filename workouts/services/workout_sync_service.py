"""Service layer behind the workout import API routes."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

from core.clients.health import HealthServiceClient
from core.exceptions import ValidationError
from core.jobs import create_job, find_latest_job
from db.models import Job
from workouts.events import (
    CompositeProgressSink,
    JobProgressSink,
    LoggingProgressSink,
    RedisProgressPublisher,
)
from workouts.network import EnvNetworkStatusProvider
from workouts.services.workout_import_gate import ImportGate
from workouts.services.workout_import_service import (
    WorkoutImportPipeline,
    WorkoutImportService,
    fetch_recent_workouts,
)
from workouts.services.workout_import_service_config import ImportSettings
from workouts.services.workout_import_service_single import SingleWorkoutImporter
from workouts.store import BeanieWorkoutStore

if TYPE_CHECKING:
    from workouts.models import SingleWorkoutImportRequest, WorkoutImportRequest
    from workouts.services.workout_import_service import WorkoutSource
    from workouts.store import WorkoutStore

logger = logging.getLogger(__name__)

IMPORT_JOB_TYPE = "workout_import"
MAX_RECENT_LIMIT = 50


def _publish_events_enabled() -> bool:
    raw = os.getenv("WORKOUT_IMPORT_PUBLISH_EVENTS", "true").strip().lower()
    return raw not in ("0", "false", "no", "off")


class WorkoutImportRuntime:
    """State container for the process-wide import service."""

    service: WorkoutImportService | None = None
    source: WorkoutSource | None = None
    store: WorkoutStore | None = None
    publish_events: bool = True


def _serialize_job(job: Job | None) -> dict[str, Any] | None:
    if job is None:
        return None
    return {
        "id": str(job.id) if job.id is not None else None,
        "status": job.status,
        "stage": job.stage,
        "progress": job.progress,
        "message": job.message,
        "error": job.error,
        "result": job.result,
        "created_at": job.created_at.isoformat() if job.created_at else None,
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }


class WorkoutSyncService:
    """Start imports, report their status and preview provider workouts."""

    @staticmethod
    def configure(
        *,
        source: WorkoutSource,
        store: WorkoutStore,
        service: WorkoutImportService | None = None,
        settings: ImportSettings | None = None,
        network_status=None,
        publish_events: bool | None = None,
    ) -> WorkoutImportService:
        settings = settings or ImportSettings()
        if service is None:

            def pipeline_factory(progress):
                return WorkoutImportPipeline(source, store, progress, settings)

            service = WorkoutImportService(
                ImportGate(settings),
                pipeline_factory,
                network_status=network_status,
                single_importer=SingleWorkoutImporter(source, store, settings),
            )
        WorkoutImportRuntime.service = service
        WorkoutImportRuntime.source = source
        WorkoutImportRuntime.store = store
        WorkoutImportRuntime.publish_events = (
            _publish_events_enabled() if publish_events is None else publish_events
        )
        return service

    @staticmethod
    def get_service() -> WorkoutImportService:
        if WorkoutImportRuntime.service is None:
            WorkoutSyncService.configure(
                source=HealthServiceClient(),
                store=BeanieWorkoutStore(),
                network_status=EnvNetworkStatusProvider(),
            )
            logger.info("Workout import service initialized")
        return WorkoutImportRuntime.service

    @staticmethod
    async def shutdown() -> None:
        if WorkoutImportRuntime.service is not None:
            await WorkoutImportRuntime.service.shutdown()
        WorkoutImportRuntime.service = None
        WorkoutImportRuntime.source = None
        WorkoutImportRuntime.store = None

    @staticmethod
    async def start_import(payload: WorkoutImportRequest) -> dict[str, Any]:
        service = WorkoutSyncService.get_service()
        handle = await create_job(
            IMPORT_JOB_TYPE,
            metadata={
                "force": payload.force,
                "trigger_source": payload.trigger_source or "api",
            },
        )
        job_sink = JobProgressSink(handle)
        publisher = (
            RedisProgressPublisher(job_id=job_sink.job_id)
            if WorkoutImportRuntime.publish_events
            else None
        )
        progress = CompositeProgressSink([LoggingProgressSink(), job_sink, publisher])

        result = await service.request_import(
            force=payload.force,
            progress=progress,
            wait=False,
        )
        if result.status != "started":
            await job_sink.completed(result)

        return {
            "status": result.status,
            "reason": result.reason,
            "job_id": job_sink.job_id,
        }

    @staticmethod
    async def import_health_workout(
        health_uuid: str,
        payload: SingleWorkoutImportRequest,
    ) -> dict[str, Any]:
        health_uuid = health_uuid.strip()
        if not health_uuid:
            msg = "health_uuid is required"
            raise ValidationError(msg)
        service = WorkoutSyncService.get_service()
        result = await service.import_single(health_uuid, attach_to=payload.attach_to)
        return result.to_dict()

    @staticmethod
    async def get_import_status() -> dict[str, Any]:
        service = WorkoutSyncService.get_service()
        latest = await find_latest_job(IMPORT_JOB_TYPE)
        return {
            "gate": service.snapshot(),
            "latest_job": _serialize_job(latest),
        }

    @staticmethod
    async def get_recent_workouts(limit: int = 10) -> dict[str, Any]:
        if limit < 1 or limit > MAX_RECENT_LIMIT:
            msg = f"limit must be between 1 and {MAX_RECENT_LIMIT}"
            raise ValidationError(msg, {"limit": limit})
        WorkoutSyncService.get_service()
        workouts = await fetch_recent_workouts(
            WorkoutImportRuntime.source,
            WorkoutImportRuntime.store,
            limit=limit,
        )
        return {
            "workouts": [w.model_dump(mode="json") for w in workouts],
            "count": len(workouts),
        }


__all__ = [
    "IMPORT_JOB_TYPE",
    "WorkoutImportRuntime",
    "WorkoutSyncService",
]
