"""Pydantic models and value types for workout import operations."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from date_utils import ensure_utc, parse_timestamp


class WorkoutKind(str, Enum):
    """Workout type stored on local records."""

    STRENGTH = "Strength Training"
    CARDIO = "Cardio"
    YOGA = "Yoga"
    RUNNING = "Running"
    CYCLING = "Cycling"
    SWIMMING = "Swimming"
    OTHER = "Other"

    @classmethod
    def coerce(cls, value: Any) -> WorkoutKind:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class CandidateWorkout(BaseModel):
    """A workout read from the health service, not yet stored locally."""

    health_uuid: str
    kind: WorkoutKind = WorkoutKind.OTHER
    start_time: datetime
    duration: float = Field(ge=0)
    energy_kcal: float | None = None
    distance_m: float | None = None
    activity_type: str | None = None
    source_name: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("start_time", mode="before")
    @classmethod
    def parse_start_time(cls, v: Any) -> datetime | None:
        parsed = parse_timestamp(v)
        return ensure_utc(parsed) if parsed else v


@dataclass(frozen=True, slots=True)
class RouteSample:
    """One GPS fix of a workout route; timestamp is POSIX seconds."""

    latitude: float
    longitude: float
    timestamp: float


ImportStatus = Literal["completed", "failed", "skipped", "deferred", "started"]


@dataclass
class ImportResult:
    """Outcome of one import request, successful or not."""

    status: ImportStatus = "completed"
    reason: str | None = None
    found: int = 0
    accepted: int = 0
    skipped_existing: int = 0
    skipped_fuzzy: int = 0
    routes_attached: int = 0
    routes_missing: int = 0
    routes_failed: int = 0
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    accepted_ids: list[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return self.skipped_existing + self.skipped_fuzzy

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("accepted_ids", None)
        data["skipped"] = self.skipped
        for key in ("started_at", "completed_at"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


class WorkoutImportRequest(BaseModel):
    """Request model for workout import actions."""

    force: bool = False
    trigger_source: str | None = None


class SingleWorkoutImportRequest(BaseModel):
    """Import one health workout, or link it to an existing local workout."""

    attach_to: str | None = None


SingleImportStatus = Literal["imported", "attached", "skipped"]
RouteOutcome = Literal["attached", "no_data", "failed", "existing"]


@dataclass
class SingleImportResult:
    status: SingleImportStatus
    health_uuid: str
    workout_id: str | None = None
    reason: str | None = None
    route: RouteOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RecentHealthWorkout(BaseModel):
    """Preview row for a provider workout, flagged when already imported."""

    health_uuid: str
    kind: WorkoutKind
    activity_type: str | None = None
    start_time: datetime
    duration: float
    energy_kcal: float | None = None
    distance_km: float | None = None
    source_name: str | None = None
    imported: bool = False

    model_config = ConfigDict(extra="ignore")
