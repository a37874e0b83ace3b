"""Local workout persistence used by the import pipeline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from beanie.operators import In, Set

from core.exceptions import StoreWriteError
from date_utils import ensure_utc
from db.models import Workout, WorkoutRoute
from workouts.models import RouteSample

logger = logging.getLogger(__name__)


class WorkoutStore(Protocol):
    async def fetch_all(self) -> list[Workout]: ...

    async def latest_start_time(self) -> datetime | None: ...

    async def insert_workouts(self, batch: list[Workout]) -> None: ...

    async def insert_route(
        self,
        workout: Workout,
        samples: list[RouteSample],
    ) -> WorkoutRoute: ...

    async def find_by_health_uuids(self, health_uuids: Iterable[str]) -> set[str]: ...

    async def find_workout(self, workout_id: str) -> Workout | None: ...

    async def update_workout(self, workout: Workout) -> None: ...


class BeanieWorkoutStore:
    """WorkoutStore backed by the ``workouts`` and ``workout_routes`` collections.

    Each write method is one unit: it either completes or raises
    ``StoreWriteError`` after removing whatever it had partially written.
    """

    async def fetch_all(self) -> list[Workout]:
        return await Workout.find_all().to_list()

    async def latest_start_time(self) -> datetime | None:
        newest = await Workout.find_all().sort("-start_time").first_or_none()
        if newest is None:
            return None
        return ensure_utc(newest.start_time)

    async def insert_workouts(self, batch: list[Workout]) -> None:
        if not batch:
            return
        inserted: list[str] = []
        try:
            for workout in batch:
                await workout.insert()
                inserted.append(workout.workout_id)
        except Exception as exc:
            logger.exception(
                "Workout batch insert failed after %d of %d records",
                len(inserted),
                len(batch),
            )
            await self._discard_workouts(inserted)
            msg = f"Failed to store workout batch: {exc}"
            raise StoreWriteError(msg, {"batch_size": len(batch)}) from exc

    async def _discard_workouts(self, workout_ids: list[str]) -> None:
        if not workout_ids:
            return
        try:
            await Workout.find(In(Workout.workout_id, workout_ids)).delete()
        except Exception:
            logger.exception(
                "Could not remove %d partially stored workouts",
                len(workout_ids),
            )

    async def insert_route(
        self,
        workout: Workout,
        samples: list[RouteSample],
    ) -> WorkoutRoute:
        route = WorkoutRoute.from_samples(workout.workout_id, samples)
        try:
            await route.insert()
        except Exception as exc:
            msg = f"Failed to store route for workout {workout.workout_id}: {exc}"
            raise StoreWriteError(msg, {"workout_id": workout.workout_id}) from exc

        try:
            await Workout.find_one(Workout.workout_id == workout.workout_id).update(
                Set({Workout.route_id: route.id}),
            )
        except Exception as exc:
            try:
                await route.delete()
            except Exception:
                logger.exception("Could not remove orphaned route %s", route.id)
            msg = f"Failed to link route to workout {workout.workout_id}: {exc}"
            raise StoreWriteError(msg, {"workout_id": workout.workout_id}) from exc

        workout.route_id = route.id
        return route

    async def find_by_health_uuids(self, health_uuids: Iterable[str]) -> set[str]:
        ids = [h for h in health_uuids if h]
        if not ids:
            return set()
        docs = await Workout.find(In(Workout.health_uuid, ids)).to_list()
        return {doc.health_uuid for doc in docs if doc.health_uuid}

    async def find_workout(self, workout_id: str) -> Workout | None:
        return await Workout.find_one(Workout.workout_id == workout_id)

    async def update_workout(self, workout: Workout) -> None:
        """Write back the health-derived fields of a linked workout."""
        try:
            await Workout.find_one(Workout.workout_id == workout.workout_id).update(
                Set(
                    {
                        Workout.health_uuid: workout.health_uuid,
                        Workout.activity_type: workout.activity_type,
                        Workout.start_time: workout.start_time,
                        Workout.duration: workout.duration,
                        Workout.energy_kcal: workout.energy_kcal,
                        Workout.distance_m: workout.distance_m,
                    },
                ),
            )
        except Exception as exc:
            msg = f"Failed to update workout {workout.workout_id}: {exc}"
            raise StoreWriteError(msg, {"workout_id": workout.workout_id}) from exc


async def commit_shielded(coro):
    """Run a store write so that cancelling the caller lets it finish.

    A cancellation that arrives mid-write waits for the write to settle
    before it propagates, so the caller's bookkeeping inside ``coro`` is
    complete by the time the cancellation is seen.
    """
    task = asyncio.ensure_future(coro)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait([task])
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Store write failed after cancellation: %s",
                task.exception(),
            )
        raise


__all__ = ["BeanieWorkoutStore", "WorkoutStore", "commit_shielded"]
