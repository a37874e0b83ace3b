from datetime import timedelta

import pytest
from beanie import PydanticObjectId
from import_fakes import (
    BASE_TIME,
    FakeWorkoutSource,
    InMemoryWorkoutStore,
    make_candidate,
    make_route,
)

from core.exceptions import ResourceNotFoundError, ValidationError
from db.models import Workout, WorkoutRoute
from workouts.models import WorkoutKind
from workouts.services.workout_import_service_config import ImportSettings
from workouts.services.workout_import_service_single import SingleWorkoutImporter
from workouts.store import BeanieWorkoutStore

FAST = ImportSettings(route_batch_pause=0.0, route_fetch_timeout=1.0)


def _manual(**overrides) -> Workout:
    fields = {
        "kind": WorkoutKind.RUNNING,
        "start_time": BASE_TIME + timedelta(minutes=2),
        "duration": 1700,
        "distance_m": 5000.0,
        "notes": "logged by hand",
    }
    fields.update(overrides)
    return Workout(**fields)


def _source() -> FakeWorkoutSource:
    return FakeWorkoutSource(
        [
            make_candidate(
                "hk-run",
                duration=1800,
                energy_kcal=410.0,
                distance_m=5200.0,
            ),
            make_candidate("hk-yoga", minutes_ago=300, kind=WorkoutKind.YOGA),
        ],
        routes={"hk-run": make_route(40), "hk-yoga": make_route(10)},
    )


@pytest.mark.asyncio
async def test_import_workout_stores_record_and_route(beanie_db) -> None:
    store = InMemoryWorkoutStore()

    result = await SingleWorkoutImporter(_source(), store, FAST).import_workout("hk-run")

    assert result.status == "imported"
    assert result.route == "attached"
    (workout,) = store.workouts
    assert result.workout_id == workout.workout_id
    assert workout.health_uuid == "hk-run"
    assert workout.notes == "Imported from Health"
    assert len(store.routes[workout.workout_id]) == 40


@pytest.mark.asyncio
async def test_import_workout_fetches_route_for_any_kind(beanie_db) -> None:
    store = InMemoryWorkoutStore()

    result = await SingleWorkoutImporter(_source(), store, FAST).import_workout("hk-yoga")

    assert result.route == "attached"


@pytest.mark.asyncio
async def test_import_workout_skips_known_identity(beanie_db) -> None:
    source = _source()
    store = InMemoryWorkoutStore()
    importer = SingleWorkoutImporter(source, store, FAST)
    await importer.import_workout("hk-run")

    result = await importer.import_workout("hk-run")

    assert result.status == "skipped"
    assert result.reason == "already_imported"
    assert len(store.workouts) == 1
    assert store.batch_calls == 1


@pytest.mark.asyncio
async def test_import_workout_skips_fuzzy_duplicate_of_manual_entry(beanie_db) -> None:
    manual = _manual(
        start_time=BASE_TIME + timedelta(seconds=4),
        duration=1805,
        energy_kcal=405.0,
        distance_m=5250.0,
    )
    store = InMemoryWorkoutStore([manual])
    source = _source()

    result = await SingleWorkoutImporter(source, store, FAST).import_workout("hk-run")

    assert result.status == "skipped"
    assert result.reason == "fuzzy_duplicate"
    assert store.workouts == [manual]
    assert source.route_requests == []


@pytest.mark.asyncio
async def test_import_workout_unknown_identity_raises(beanie_db) -> None:
    importer = SingleWorkoutImporter(_source(), InMemoryWorkoutStore(), FAST)

    with pytest.raises(ResourceNotFoundError):
        await importer.import_workout("hk-missing")


@pytest.mark.asyncio
async def test_import_workout_keeps_record_when_route_fetch_fails(beanie_db) -> None:
    source = _source()
    source.routes["hk-run"] = RuntimeError("route query failed")
    store = InMemoryWorkoutStore()

    result = await SingleWorkoutImporter(source, store, FAST).import_workout("hk-run")

    assert result.status == "imported"
    assert result.route == "failed"
    assert store.health_uuids() == ["hk-run"]


@pytest.mark.asyncio
async def test_attach_workout_links_and_fills_missing_metrics(beanie_db) -> None:
    manual = _manual()
    store = InMemoryWorkoutStore([manual])

    result = await SingleWorkoutImporter(_source(), store, FAST).attach_workout(
        "hk-run",
        manual.workout_id,
    )

    assert result.status == "attached"
    assert result.route == "attached"
    assert manual.health_uuid == "hk-run"
    assert manual.start_time == BASE_TIME
    assert manual.duration == 1800
    assert manual.energy_kcal == 410.0
    assert manual.distance_m == 5000.0
    assert manual.notes == "logged by hand"
    assert store.update_calls == 1
    assert len(store.workouts) == 1


@pytest.mark.asyncio
async def test_attach_workout_keeps_existing_route(beanie_db) -> None:
    manual = _manual(route_id=PydanticObjectId())
    store = InMemoryWorkoutStore([manual])
    source = _source()

    result = await SingleWorkoutImporter(source, store, FAST).attach_workout(
        "hk-run",
        manual.workout_id,
    )

    assert result.route == "existing"
    assert source.route_requests == []


@pytest.mark.asyncio
async def test_attach_workout_skips_identity_linked_elsewhere(beanie_db) -> None:
    manual = _manual()
    imported = _manual(health_uuid="hk-run", start_time=BASE_TIME)
    store = InMemoryWorkoutStore([manual, imported])

    result = await SingleWorkoutImporter(_source(), store, FAST).attach_workout(
        "hk-run",
        manual.workout_id,
    )

    assert result.status == "skipped"
    assert result.reason == "already_imported"
    assert manual.health_uuid is None
    assert store.update_calls == 0


@pytest.mark.asyncio
async def test_attach_workout_rejects_workout_linked_to_other_identity(beanie_db) -> None:
    manual = _manual(health_uuid="hk-other")
    importer = SingleWorkoutImporter(_source(), InMemoryWorkoutStore([manual]), FAST)

    with pytest.raises(ValidationError):
        await importer.attach_workout("hk-run", manual.workout_id)


@pytest.mark.asyncio
async def test_attach_workout_unknown_local_workout_raises(beanie_db) -> None:
    importer = SingleWorkoutImporter(_source(), InMemoryWorkoutStore(), FAST)

    with pytest.raises(ResourceNotFoundError):
        await importer.attach_workout("hk-run", "no-such-workout")


@pytest.mark.asyncio
async def test_attach_workout_through_beanie_store(beanie_db) -> None:
    store = BeanieWorkoutStore()
    manual = _manual(distance_m=None)
    await store.insert_workouts([manual])

    result = await SingleWorkoutImporter(_source(), store, FAST).attach_workout(
        "hk-run",
        manual.workout_id,
    )

    assert result.status == "attached"
    reloaded = await store.find_workout(manual.workout_id)
    assert reloaded.health_uuid == "hk-run"
    assert reloaded.distance_m == 5200.0
    assert reloaded.route_id is not None
    route = await WorkoutRoute.get(reloaded.route_id)
    assert route.point_count == 40
