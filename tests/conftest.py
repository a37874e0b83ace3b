import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient

from db.models import ALL_DOCUMENT_MODELS  # noqa: E402
from workouts.services.workout_sync_service import WorkoutImportRuntime  # noqa: E402


@pytest.fixture(autouse=True)
def _default_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HEALTH_API_BASE_URL", "http://health.test/v1")
    monkeypatch.setenv("WORKOUT_IMPORT_PUBLISH_EVENTS", "false")
    monkeypatch.delenv("WORKOUT_IMPORT_NETWORK", raising=False)


@pytest.fixture(autouse=True)
def _reset_import_runtime():
    WorkoutImportRuntime.service = None
    WorkoutImportRuntime.source = None
    WorkoutImportRuntime.store = None
    WorkoutImportRuntime.publish_events = False
    yield
    WorkoutImportRuntime.service = None
    WorkoutImportRuntime.source = None
    WorkoutImportRuntime.store = None


@pytest.fixture
async def beanie_db():
    client = AsyncMongoMockClient()
    database = client["test_db"]
    await init_beanie(database=database, document_models=ALL_DOCUMENT_MODELS)
    return database
