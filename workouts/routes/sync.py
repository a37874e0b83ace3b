"""API routes for workout import actions."""

import logging

from fastapi import APIRouter, Query

from core.api import api_route
from workouts.models import SingleWorkoutImportRequest, WorkoutImportRequest
from workouts.services.workout_sync_service import WorkoutSyncService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/workouts/import", response_model=dict)
@api_route(logger)
async def start_workout_import(payload: WorkoutImportRequest | None = None):
    """Start a workout import in the background."""
    if payload is None:
        payload = WorkoutImportRequest()
    return await WorkoutSyncService.start_import(payload)


@router.get("/api/workouts/import/status", response_model=dict)
@api_route(logger)
async def get_workout_import_status():
    """Get the import gate state and the latest import job."""
    return await WorkoutSyncService.get_import_status()


@router.get("/api/workouts/health/recent", response_model=dict)
@api_route(logger)
async def get_recent_health_workouts(limit: int = Query(10)):
    """List the newest health service workouts with an imported flag."""
    return await WorkoutSyncService.get_recent_workouts(limit)


@router.post("/api/workouts/health/{health_uuid}/import", response_model=dict)
@api_route(logger)
async def import_health_workout(
    health_uuid: str,
    payload: SingleWorkoutImportRequest | None = None,
):
    """Import one health workout, or link it to an existing workout."""
    if payload is None:
        payload = SingleWorkoutImportRequest()
    return await WorkoutSyncService.import_health_workout(health_uuid, payload)
