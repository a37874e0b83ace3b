"""Health service payload normalization helpers."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from date_utils import parse_timestamp, to_epoch_seconds
from workouts.models import CandidateWorkout, RouteSample, WorkoutKind

logger = logging.getLogger(__name__)

# Provider activity types by raw enum value, for payloads that send numbers.
_ACTIVITY_TYPE_NAMES_BY_RAW: dict[int, str] = {
    13: "cycling",
    16: "elliptical",
    20: "functionalStrengthTraining",
    24: "hiking",
    35: "rowing",
    37: "running",
    44: "stairClimbing",
    46: "swimming",
    50: "traditionalStrengthTraining",
    52: "walking",
    57: "yoga",
    59: "coreTraining",
    73: "mixedCardio",
}

_KIND_BY_ACTIVITY_TYPE: dict[str, WorkoutKind] = {
    "running": WorkoutKind.RUNNING,
    "cycling": WorkoutKind.CYCLING,
    "swimming": WorkoutKind.SWIMMING,
    "yoga": WorkoutKind.YOGA,
    "traditionalstrengthtraining": WorkoutKind.STRENGTH,
    "functionalstrengthtraining": WorkoutKind.STRENGTH,
    "coretraining": WorkoutKind.STRENGTH,
    "walking": WorkoutKind.CARDIO,
    "hiking": WorkoutKind.CARDIO,
    "elliptical": WorkoutKind.CARDIO,
    "rowing": WorkoutKind.CARDIO,
    "stairclimbing": WorkoutKind.CARDIO,
    "mixedcardio": WorkoutKind.CARDIO,
}


def activity_type_name(raw: Any) -> str | None:
    """Return the provider activity type as a name, resolving numeric values."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return _ACTIVITY_TYPE_NAMES_BY_RAW.get(raw, str(raw))
    text = str(raw).strip()
    if not text:
        return None
    if text.isdigit():
        return _ACTIVITY_TYPE_NAMES_BY_RAW.get(int(text), text)
    return text


def map_activity_type(raw: Any) -> WorkoutKind:
    """Map a provider activity type onto a local workout kind."""
    name = activity_type_name(raw)
    if not name:
        return WorkoutKind.OTHER
    return _KIND_BY_ACTIVITY_TYPE.get(name.replace("_", "").lower(), WorkoutKind.OTHER)


def _optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _resolve_duration(payload: dict[str, Any]) -> float | None:
    duration = _optional_float(payload.get("duration"))
    if duration is not None:
        return duration
    start = parse_timestamp(payload.get("startDate"))
    end = parse_timestamp(payload.get("endDate"))
    if start is None or end is None:
        return None
    return max(0.0, (end - start).total_seconds())


def normalize_workout_payload(payload: Any) -> CandidateWorkout | None:
    """Convert one provider workout payload into a candidate, or None if unusable."""
    if not isinstance(payload, dict):
        return None

    health_uuid = str(payload.get("uuid") or "").strip()
    start_time = parse_timestamp(payload.get("startDate"))
    duration = _resolve_duration(payload)
    if not health_uuid or start_time is None or duration is None:
        logger.debug("Dropping incomplete workout payload: uuid=%s", health_uuid)
        return None

    activity_type = activity_type_name(payload.get("workoutActivityType"))
    try:
        return CandidateWorkout(
            health_uuid=health_uuid,
            kind=map_activity_type(activity_type),
            start_time=start_time,
            duration=duration,
            energy_kcal=_optional_float(payload.get("totalEnergyBurned")),
            distance_m=_optional_float(payload.get("totalDistance")),
            activity_type=activity_type,
            source_name=payload.get("sourceName") or None,
        )
    except PydanticValidationError as exc:
        logger.warning("Invalid workout payload %s: %s", health_uuid, exc)
        return None


def normalize_route_locations(locations: Any) -> list[RouteSample]:
    """Normalize provider route locations into samples.

    Entries without a parseable coordinate pair or timestamp are dropped.
    Coordinate sanity (finite, non-zero) is checked later by the route
    cleaning step, not here.
    """
    if not isinstance(locations, list):
        return []

    samples: list[RouteSample] = []
    for item in locations:
        if not isinstance(item, dict):
            continue
        lat = _optional_float(item.get("latitude"))
        lon = _optional_float(item.get("longitude"))
        timestamp = parse_timestamp(item.get("timestamp"))
        if lat is None or lon is None or timestamp is None:
            continue
        samples.append(
            RouteSample(
                latitude=lat,
                longitude=lon,
                timestamp=to_epoch_seconds(timestamp),
            ),
        )
    return samples


__all__ = [
    "activity_type_name",
    "map_activity_type",
    "normalize_route_locations",
    "normalize_workout_payload",
]
