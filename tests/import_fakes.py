from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

from beanie import PydanticObjectId

from core.exceptions import StoreWriteError
from date_utils import ensure_utc
from workouts.models import CandidateWorkout, ImportResult, RouteSample, WorkoutKind

# Multiple of 15 seconds so start buckets line up with whole seconds.
BASE_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)


def make_candidate(
    health_uuid: str,
    *,
    start: datetime | None = None,
    minutes_ago: float = 0,
    kind: WorkoutKind = WorkoutKind.RUNNING,
    duration: float = 1800.0,
    energy_kcal: float | None = None,
    distance_m: float | None = None,
) -> CandidateWorkout:
    start_time = start or (BASE_TIME - timedelta(minutes=minutes_ago))
    return CandidateWorkout(
        health_uuid=health_uuid,
        kind=kind,
        start_time=start_time,
        duration=duration,
        energy_kcal=energy_kcal,
        distance_m=distance_m,
    )


def make_route(count: int, *, start_ts: float = 1_700_000_000.0) -> list[RouteSample]:
    return [
        RouteSample(
            latitude=40.0 + i * 0.0001,
            longitude=-74.0 - i * 0.0001,
            timestamp=start_ts + i,
        )
        for i in range(count)
    ]


class FakeWorkoutSource:
    def __init__(
        self,
        workouts: list[CandidateWorkout] | None = None,
        routes: dict[str, Any] | None = None,
        *,
        has_new: Any = True,
        fetch_error: Exception | None = None,
        route_delay: float = 0.0,
    ) -> None:
        self.workouts = list(workouts or [])
        # health_uuid -> samples, an exception to raise, or "hang"
        self.routes = dict(routes or {})
        self.has_new = has_new
        self.fetch_error = fetch_error
        self.route_delay = route_delay
        self.fetch_calls = 0
        self.precheck_calls = 0
        self.precheck_since: list[datetime | None] = []
        self.route_requests: list[str] = []
        self.active_routes = 0
        self.max_active_routes = 0

    async def fetch_workouts(
        self,
        *,
        started_after: datetime | None = None,
        limit: int | None = None,
    ) -> list[CandidateWorkout]:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        items = list(self.workouts)
        if limit is not None:
            items = sorted(items, key=lambda c: c.start_time, reverse=True)[:limit]
        return items

    async def fetch_workout(self, health_uuid: str) -> CandidateWorkout | None:
        self.fetch_calls += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return next((w for w in self.workouts if w.health_uuid == health_uuid), None)

    async def has_workouts_since(self, since: datetime | None) -> bool:
        self.precheck_calls += 1
        self.precheck_since.append(since)
        if isinstance(self.has_new, BaseException):
            raise self.has_new
        return self.has_new

    async def iter_route_samples(self, health_uuid: str):
        self.route_requests.append(health_uuid)
        self.active_routes += 1
        self.max_active_routes = max(self.max_active_routes, self.active_routes)
        try:
            if self.route_delay:
                await asyncio.sleep(self.route_delay)
            route = self.routes.get(health_uuid)
            if route == "hang":
                await asyncio.sleep(3600)
            if isinstance(route, Exception):
                raise route
            samples = list(route or [])
            for i in range(0, len(samples), 100):
                yield samples[i : i + 100]
        finally:
            self.active_routes -= 1


class InMemoryWorkoutStore:
    def __init__(
        self,
        existing: list[Any] | None = None,
        *,
        fail_batches: tuple[int, ...] = (),
        fail_routes: tuple[str, ...] = (),
    ) -> None:
        self.workouts = list(existing or [])
        self.routes: dict[str, list[RouteSample]] = {}
        self.batch_calls = 0
        self.route_calls = 0
        self.update_calls = 0
        self.fail_batches = set(fail_batches)
        self.fail_routes = set(fail_routes)

    async def fetch_all(self) -> list[Any]:
        return list(self.workouts)

    async def latest_start_time(self) -> datetime | None:
        if not self.workouts:
            return None
        return ensure_utc(max(w.start_time for w in self.workouts))

    async def insert_workouts(self, batch: list[Any]) -> None:
        self.batch_calls += 1
        if self.batch_calls in self.fail_batches:
            msg = f"batch {self.batch_calls} rejected"
            raise StoreWriteError(msg)
        self.workouts.extend(batch)

    async def insert_route(self, workout: Any, samples: list[RouteSample]) -> Any:
        self.route_calls += 1
        if workout.health_uuid in self.fail_routes:
            msg = f"route for {workout.health_uuid} rejected"
            raise StoreWriteError(msg)
        self.routes[workout.workout_id] = list(samples)
        workout.route_id = PydanticObjectId()
        return samples

    async def find_by_health_uuids(self, health_uuids) -> set[str]:
        wanted = set(health_uuids)
        return {w.health_uuid for w in self.workouts if w.health_uuid in wanted}

    async def find_workout(self, workout_id: str) -> Any:
        return next((w for w in self.workouts if w.workout_id == workout_id), None)

    async def update_workout(self, workout: Any) -> None:
        self.update_calls += 1

    def health_uuids(self) -> list[str]:
        return [w.health_uuid for w in self.workouts if w.health_uuid]


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    async def progress(self, fraction: float) -> None:
        self.events.append(("progress", fraction))

    async def routing_started(self) -> None:
        self.events.append(("routing_started",))

    async def completed(self, result: ImportResult) -> None:
        self.events.append(("completed", result))

    def names(self) -> list[str]:
        return [event[0] for event in self.events]

    def fractions(self) -> list[float]:
        return [event[1] for event in self.events if event[0] == "progress"]


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
