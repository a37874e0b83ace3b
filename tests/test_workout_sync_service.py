import pytest
from beanie import PydanticObjectId
from import_fakes import FakeWorkoutSource, InMemoryWorkoutStore, make_candidate

from core.exceptions import ValidationError
from db.models import Job
from workouts.models import (
    SingleWorkoutImportRequest,
    WorkoutImportRequest,
    WorkoutKind,
)
from workouts.services.workout_import_service_config import ImportSettings
from workouts.services.workout_sync_service import (
    IMPORT_JOB_TYPE,
    WorkoutImportRuntime,
    WorkoutSyncService,
)


def _configure():
    source = FakeWorkoutSource(
        [
            make_candidate("a", minutes_ago=0, kind=WorkoutKind.YOGA),
            make_candidate("b", minutes_ago=90, kind=WorkoutKind.YOGA),
        ],
    )
    store = InMemoryWorkoutStore()
    service = WorkoutSyncService.configure(
        source=source,
        store=store,
        settings=ImportSettings(route_batch_pause=0.0),
        publish_events=False,
    )
    return source, store, service


@pytest.mark.asyncio
async def test_start_import_runs_in_background_and_tracks_job(beanie_db) -> None:
    _, store, service = _configure()

    response = await WorkoutSyncService.start_import(WorkoutImportRequest())
    await service.wait_idle()

    assert response["status"] == "started"
    assert response["job_id"]
    assert len(store.workouts) == 2
    job = await Job.get(PydanticObjectId(response["job_id"]))
    assert job.job_type == IMPORT_JOB_TYPE
    assert job.status == "completed"
    assert job.result["accepted"] == 2
    assert job.metadata["trigger_source"] == "api"


@pytest.mark.asyncio
async def test_start_import_records_dropped_request(beanie_db) -> None:
    _, _, service = _configure()
    await WorkoutSyncService.start_import(WorkoutImportRequest())
    await service.wait_idle()

    response = await WorkoutSyncService.start_import(WorkoutImportRequest())

    assert response["status"] == "skipped"
    assert response["reason"] == "refresh_debounced"
    job = await Job.get(PydanticObjectId(response["job_id"]))
    assert job.stage == "skipped"


@pytest.mark.asyncio
async def test_get_import_status_includes_latest_job(beanie_db) -> None:
    _, _, service = _configure()
    response = await WorkoutSyncService.start_import(
        WorkoutImportRequest(trigger_source="settings"),
    )
    await service.wait_idle()

    status = await WorkoutSyncService.get_import_status()

    assert status["gate"]["state"] == "cooling_down"
    assert status["latest_job"]["id"] == response["job_id"]
    assert status["latest_job"]["status"] == "completed"


@pytest.mark.asyncio
async def test_get_recent_workouts_validates_limit(beanie_db) -> None:
    _configure()

    with pytest.raises(ValidationError):
        await WorkoutSyncService.get_recent_workouts(0)

    recent = await WorkoutSyncService.get_recent_workouts(1)
    assert recent["count"] == 1
    assert recent["workouts"][0]["health_uuid"] == "a"
    assert recent["workouts"][0]["imported"] is False


@pytest.mark.asyncio
async def test_shutdown_clears_runtime(beanie_db) -> None:
    _configure()

    await WorkoutSyncService.shutdown()

    assert WorkoutImportRuntime.service is None
    assert WorkoutImportRuntime.source is None


@pytest.mark.asyncio
async def test_import_health_workout_imports_then_skips(beanie_db) -> None:
    _, store, _ = _configure()

    first = await WorkoutSyncService.import_health_workout(
        "b",
        SingleWorkoutImportRequest(),
    )
    second = await WorkoutSyncService.import_health_workout(
        " b ",
        SingleWorkoutImportRequest(),
    )

    assert first["status"] == "imported"
    assert first["workout_id"] == store.workouts[0].workout_id
    assert second["status"] == "skipped"
    assert second["reason"] == "already_imported"
    assert store.health_uuids() == ["b"]


@pytest.mark.asyncio
async def test_import_health_workout_rejects_blank_identity(beanie_db) -> None:
    _configure()

    with pytest.raises(ValidationError):
        await WorkoutSyncService.import_health_workout(
            "  ",
            SingleWorkoutImportRequest(),
        )
