"""Workout services module."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from workouts.services.workout_import_service import (
        WorkoutImportPipeline,
        WorkoutImportService,
    )
    from workouts.services.workout_sync_service import WorkoutSyncService

__all__ = ("WorkoutImportPipeline", "WorkoutImportService", "WorkoutSyncService")


def __getattr__(name: str):
    if name == "WorkoutImportPipeline":
        from workouts.services.workout_import_service import WorkoutImportPipeline

        return WorkoutImportPipeline
    if name == "WorkoutImportService":
        from workouts.services.workout_import_service import WorkoutImportService

        return WorkoutImportService
    if name == "WorkoutSyncService":
        from workouts.services.workout_sync_service import WorkoutSyncService

        return WorkoutSyncService
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
