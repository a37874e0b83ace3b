"""Import one chosen health workout, or link it to a hand-logged workout."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from core.exceptions import ResourceNotFoundError, StoreWriteError, ValidationError
from workouts.models import SingleImportResult
from workouts.services.duplicate_index import DuplicateIndex
from workouts.services.workout_import_service_config import ImportSettings
from workouts.services.workout_import_service_processing import build_local_workout
from workouts.services.workout_import_service_routes import (
    RouteAttachmentScheduler,
    RouteSource,
)
from workouts.store import commit_shielded

if TYPE_CHECKING:
    from db.models import Workout
    from workouts.models import CandidateWorkout, RouteOutcome
    from workouts.store import WorkoutStore

logger = logging.getLogger(__name__)


class SingleWorkoutSource(RouteSource, Protocol):
    async def fetch_workout(self, health_uuid: str) -> CandidateWorkout | None: ...


class SingleWorkoutImporter:
    """Handles the "recent workouts" actions for a single provider workout.

    Both paths check the stored workouts first and attach routes through
    the same scheduler as a full import.
    """

    def __init__(
        self,
        source: SingleWorkoutSource,
        store: WorkoutStore,
        settings: ImportSettings | None = None,
    ) -> None:
        self.source = source
        self.store = store
        self.settings = settings or ImportSettings()

    async def _candidate(self, health_uuid: str) -> CandidateWorkout:
        candidate = await self.source.fetch_workout(health_uuid)
        if candidate is None:
            msg = f"Health workout {health_uuid} not found"
            raise ResourceNotFoundError(msg, {"health_uuid": health_uuid})
        return candidate

    async def _attach_route(self, health_uuid: str, workout: Workout) -> RouteOutcome:
        scheduler = RouteAttachmentScheduler(self.source, self.store, self.settings)
        try:
            outcome = await scheduler.attach([(health_uuid, workout)])
        except StoreWriteError:
            logger.exception("Could not store route for workout %s", workout.workout_id)
            return "failed"
        if outcome.attached:
            return "attached"
        if outcome.no_data:
            return "no_data"
        return "failed"

    async def import_workout(self, health_uuid: str) -> SingleImportResult:
        candidate = await self._candidate(health_uuid)
        index = DuplicateIndex.build(await self.store.fetch_all())
        reason = index.reason(candidate)
        if reason is not None:
            logger.info("Health workout %s is already stored (%s)", health_uuid, reason)
            return SingleImportResult(
                status="skipped",
                health_uuid=health_uuid,
                reason="already_imported" if reason == "health_uuid" else "fuzzy_duplicate",
            )

        workout = build_local_workout(candidate, self.settings)
        await commit_shielded(self.store.insert_workouts([workout]))
        route = await self._attach_route(health_uuid, workout)
        logger.info("Imported health workout %s as %s", health_uuid, workout.workout_id)
        return SingleImportResult(
            status="imported",
            health_uuid=health_uuid,
            workout_id=workout.workout_id,
            route=route,
        )

    async def attach_workout(
        self,
        health_uuid: str,
        workout_id: str,
    ) -> SingleImportResult:
        """Link ``workout_id`` to the provider workout.

        Timing follows the provider, energy and distance are only filled
        when missing, and a route is added only if there is none yet.
        """
        candidate = await self._candidate(health_uuid)
        workout = await self.store.find_workout(workout_id)
        if workout is None:
            msg = f"Workout {workout_id} not found"
            raise ResourceNotFoundError(msg, {"workout_id": workout_id})
        if workout.health_uuid and workout.health_uuid != health_uuid:
            msg = f"Workout {workout_id} is already linked to another health workout"
            raise ValidationError(msg, {"workout_id": workout_id})

        if workout.health_uuid != health_uuid:
            linked = await self.store.find_by_health_uuids([health_uuid])
            if health_uuid in linked:
                return SingleImportResult(
                    status="skipped",
                    health_uuid=health_uuid,
                    workout_id=workout_id,
                    reason="already_imported",
                )

        workout.health_uuid = health_uuid
        workout.activity_type = candidate.activity_type
        workout.start_time = candidate.start_time
        workout.duration = candidate.duration
        if workout.energy_kcal is None:
            workout.energy_kcal = candidate.energy_kcal
        if (workout.distance_m or 0) <= 0 and (candidate.distance_m or 0) > 0:
            workout.distance_m = candidate.distance_m
        await commit_shielded(self.store.update_workout(workout))

        if workout.route_id is not None:
            route: RouteOutcome = "existing"
        else:
            route = await self._attach_route(health_uuid, workout)
        return SingleImportResult(
            status="attached",
            health_uuid=health_uuid,
            workout_id=workout_id,
            route=route,
        )


__all__ = ["SingleWorkoutImporter", "SingleWorkoutSource"]
