"""Tunables for workout import.

Every value can be overridden through the environment; unparsable values
fall back to the default and are then clamped to a sane range.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from workouts.models import WorkoutKind

try:
    _IMPORT_BATCH_SIZE = int(os.getenv("WORKOUT_IMPORT_BATCH_SIZE", "50"))
except ValueError:
    _IMPORT_BATCH_SIZE = 50
IMPORT_BATCH_SIZE = max(1, _IMPORT_BATCH_SIZE)

try:
    _ROUTE_BATCH_SIZE = int(os.getenv("WORKOUT_ROUTE_BATCH_SIZE", "3"))
except ValueError:
    _ROUTE_BATCH_SIZE = 3
ROUTE_BATCH_SIZE = max(1, _ROUTE_BATCH_SIZE)

try:
    _ROUTE_FETCH_TIMEOUT_SECONDS = float(
        os.getenv("WORKOUT_ROUTE_FETCH_TIMEOUT_SECONDS", "15"),
    )
except ValueError:
    _ROUTE_FETCH_TIMEOUT_SECONDS = 15.0
ROUTE_FETCH_TIMEOUT_SECONDS = max(1.0, _ROUTE_FETCH_TIMEOUT_SECONDS)

try:
    _ROUTE_MAX_POINTS = int(os.getenv("WORKOUT_ROUTE_MAX_POINTS", "300"))
except ValueError:
    _ROUTE_MAX_POINTS = 300
ROUTE_MAX_POINTS = max(2, _ROUTE_MAX_POINTS)

try:
    _ROUTE_BATCH_PAUSE_SECONDS = float(
        os.getenv("WORKOUT_ROUTE_BATCH_PAUSE_SECONDS", "0.1"),
    )
except ValueError:
    _ROUTE_BATCH_PAUSE_SECONDS = 0.1
ROUTE_BATCH_PAUSE_SECONDS = max(0.0, _ROUTE_BATCH_PAUSE_SECONDS)

try:
    _ROUTE_MIN_DURATION_SECONDS = float(
        os.getenv("WORKOUT_ROUTE_MIN_DURATION_SECONDS", "300"),
    )
except ValueError:
    _ROUTE_MIN_DURATION_SECONDS = 300.0
ROUTE_MIN_DURATION_SECONDS = max(0.0, _ROUTE_MIN_DURATION_SECONDS)

try:
    _MIN_REFRESH_INTERVAL_SECONDS = float(
        os.getenv("WORKOUT_IMPORT_MIN_REFRESH_INTERVAL_SECONDS", "30"),
    )
except ValueError:
    _MIN_REFRESH_INTERVAL_SECONDS = 30.0
MIN_REFRESH_INTERVAL_SECONDS = max(0.0, _MIN_REFRESH_INTERVAL_SECONDS)

try:
    _MIN_FULL_IMPORT_INTERVAL_SECONDS = float(
        os.getenv("WORKOUT_IMPORT_MIN_FULL_INTERVAL_SECONDS", "300"),
    )
except ValueError:
    _MIN_FULL_IMPORT_INTERVAL_SECONDS = 300.0
MIN_FULL_IMPORT_INTERVAL_SECONDS = max(
    MIN_REFRESH_INTERVAL_SECONDS,
    _MIN_FULL_IMPORT_INTERVAL_SECONDS,
)


def _parse_route_kinds(raw: str | None) -> frozenset[WorkoutKind]:
    default = frozenset({WorkoutKind.RUNNING, WorkoutKind.CYCLING})
    if not raw:
        return default
    kinds: set[WorkoutKind] = set()
    for part in raw.split(","):
        name = part.strip()
        if not name:
            continue
        try:
            kinds.add(WorkoutKind(name))
        except ValueError:
            continue
    return frozenset(kinds) or default


ROUTE_KINDS = _parse_route_kinds(os.getenv("WORKOUT_ROUTE_KINDS"))

# Fuzzy duplicate buckets. Changing these changes which records count as
# duplicates of already stored ones.
START_BUCKET_SECONDS = 15
DURATION_BUCKET_SECONDS = 15
ENERGY_BUCKET_KCAL = 25
DISTANCE_BUCKET_METERS = 100

IMPORT_NOTE = "Imported from Health"


@dataclass(frozen=True)
class ImportSettings:
    """Snapshot of the import tunables passed into pipeline components."""

    import_batch_size: int = IMPORT_BATCH_SIZE
    route_batch_size: int = ROUTE_BATCH_SIZE
    route_fetch_timeout: float = ROUTE_FETCH_TIMEOUT_SECONDS
    route_max_points: int = ROUTE_MAX_POINTS
    route_batch_pause: float = ROUTE_BATCH_PAUSE_SECONDS
    route_min_duration: float = ROUTE_MIN_DURATION_SECONDS
    route_kinds: frozenset[WorkoutKind] = field(default=ROUTE_KINDS)
    min_refresh_interval: float = MIN_REFRESH_INTERVAL_SECONDS
    min_full_import_interval: float = MIN_FULL_IMPORT_INTERVAL_SECONDS
    import_note: str = IMPORT_NOTE

    def wants_route(self, kind: WorkoutKind, duration: float) -> bool:
        return kind in self.route_kinds and duration > self.route_min_duration


__all__ = [
    "DISTANCE_BUCKET_METERS",
    "DURATION_BUCKET_SECONDS",
    "ENERGY_BUCKET_KCAL",
    "IMPORT_BATCH_SIZE",
    "IMPORT_NOTE",
    "MIN_FULL_IMPORT_INTERVAL_SECONDS",
    "MIN_REFRESH_INTERVAL_SECONDS",
    "ROUTE_BATCH_PAUSE_SECONDS",
    "ROUTE_BATCH_SIZE",
    "ROUTE_FETCH_TIMEOUT_SECONDS",
    "ROUTE_KINDS",
    "ROUTE_MAX_POINTS",
    "ROUTE_MIN_DURATION_SECONDS",
    "START_BUCKET_SECONDS",
    "ImportSettings",
]
