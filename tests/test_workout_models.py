from datetime import UTC, datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from workouts.models import CandidateWorkout, ImportResult, WorkoutKind
from workouts.network import EnvNetworkStatusProvider, NetworkStatus
from workouts.services.workout_import_service_config import (
    ImportSettings,
    _parse_route_kinds,
)


def test_workout_kind_coerce_falls_back_to_other() -> None:
    assert WorkoutKind.coerce("Running") is WorkoutKind.RUNNING
    assert WorkoutKind.coerce(WorkoutKind.YOGA) is WorkoutKind.YOGA
    assert WorkoutKind.coerce("Pilates") is WorkoutKind.OTHER


def test_candidate_parses_start_time_to_utc() -> None:
    candidate = CandidateWorkout(
        health_uuid="x",
        start_time="2024-03-01T07:00:00-05:00",
        duration=60,
    )

    assert candidate.start_time == datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
    with pytest.raises(PydanticValidationError):
        CandidateWorkout(health_uuid="x", start_time=candidate.start_time, duration=-1)


def test_import_result_to_dict_hides_ids_and_sums_skips() -> None:
    started = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
    result = ImportResult(
        skipped_existing=2,
        skipped_fuzzy=1,
        accepted_ids=["a"],
        started_at=started,
    )

    data = result.to_dict()

    assert data["skipped"] == 3
    assert "accepted_ids" not in data
    assert data["started_at"] == started.isoformat()
    assert data["completed_at"] is None


def test_route_kinds_parsing() -> None:
    assert _parse_route_kinds(None) == {WorkoutKind.RUNNING, WorkoutKind.CYCLING}
    assert _parse_route_kinds("Swimming, Running") == {
        WorkoutKind.SWIMMING,
        WorkoutKind.RUNNING,
    }
    assert _parse_route_kinds("Nope") == {WorkoutKind.RUNNING, WorkoutKind.CYCLING}


def test_wants_route_requires_kind_and_minimum_duration() -> None:
    settings = ImportSettings()

    assert settings.wants_route(WorkoutKind.RUNNING, 301)
    assert not settings.wants_route(WorkoutKind.RUNNING, 300)
    assert not settings.wants_route(WorkoutKind.YOGA, 3600)


@pytest.mark.parametrize(
    ("label", "safe"),
    [
        (None, True),
        ("wifi", True),
        ("cellular", False),
        ("constrained", False),
        ("offline", False),
        ("satellite", True),
    ],
)
def test_network_status_from_label(label, safe) -> None:
    assert NetworkStatus.from_label(label).is_safe_to_use_data is safe


@pytest.mark.asyncio
async def test_env_network_provider_reads_current_value(monkeypatch) -> None:
    provider = EnvNetworkStatusProvider()

    monkeypatch.setenv("WORKOUT_IMPORT_NETWORK", "cellular")
    assert (await provider.current()).expensive is True

    monkeypatch.setenv("WORKOUT_IMPORT_NETWORK", "wifi")
    assert (await provider.current()).is_safe_to_use_data is True
