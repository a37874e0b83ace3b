"""Fuzzy identity keys for workouts that lack a shared health identity."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, NamedTuple

from date_utils import to_epoch_seconds
from workouts.models import WorkoutKind
from workouts.services.workout_import_service_config import (
    DISTANCE_BUCKET_METERS,
    DURATION_BUCKET_SECONDS,
    ENERGY_BUCKET_KCAL,
    START_BUCKET_SECONDS,
)


class FuzzyKey(NamedTuple):
    kind: WorkoutKind
    start_bucket: int
    duration_bucket: int
    energy_bucket: int | None
    distance_bucket: int | None


def _bucket(value: float | None, granularity: float) -> int | None:
    if value is None:
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return math.floor(value / granularity)


def build_fuzzy_key(
    kind: WorkoutKind | str,
    start_time: datetime,
    duration: float,
    energy_kcal: float | None = None,
    distance_m: float | None = None,
) -> FuzzyKey:
    """Quantize the identifying measurements of a workout into a hashable key.

    Two workouts whose measurements land in the same buckets are treated as
    the same session. A value sitting just across a bucket edge produces a
    different key, so near-identical records can occasionally both survive.
    """
    return FuzzyKey(
        kind=WorkoutKind.coerce(kind),
        start_bucket=math.floor(to_epoch_seconds(start_time) / START_BUCKET_SECONDS),
        duration_bucket=_bucket(duration, DURATION_BUCKET_SECONDS) or 0,
        energy_bucket=_bucket(energy_kcal, ENERGY_BUCKET_KCAL),
        distance_bucket=_bucket(distance_m, DISTANCE_BUCKET_METERS),
    )


def fuzzy_key_for(record: Any) -> FuzzyKey:
    """Build the key for a candidate or a stored workout."""
    return build_fuzzy_key(
        record.kind,
        record.start_time,
        record.duration,
        getattr(record, "energy_kcal", None),
        getattr(record, "distance_m", None),
    )


__all__ = ["FuzzyKey", "build_fuzzy_key", "fuzzy_key_for"]
