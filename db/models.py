"""Beanie ODM document models for MongoDB collections.

This module defines all document models using Beanie ODM, which provides:
- Automatic Pydantic validation
- Built-in async CRUD operations
- Proper ObjectId/datetime serialization
- Index definitions at the model level

Usage:
    from db.models import Workout, WorkoutRoute

    # Find a workout by its health service identity
    workout = await Workout.find_one(Workout.health_uuid == "8F2C...")

    # Insert a new document
    workout = Workout(kind="Running", start_time=..., duration=1800)
    await workout.insert()
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import bson
from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field, field_validator
from pymongo import ASCENDING, DESCENDING, IndexModel

from date_utils import parse_timestamp
from workouts.models import RouteSample, WorkoutKind


def _new_workout_id() -> str:
    return str(uuid.uuid4())


class Workout(Document):
    """A locally stored workout, manual or imported from the health service."""

    workout_id: Indexed(str, unique=True) = Field(default_factory=_new_workout_id)
    health_uuid: Indexed(str) | None = None
    kind: WorkoutKind = WorkoutKind.OTHER
    start_time: datetime
    duration: float = 0.0
    energy_kcal: float | None = None
    distance_m: float | None = None
    notes: str | None = None
    activity_type: str | None = None
    route_id: PydanticObjectId | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("start_time", "created_at", mode="before")
    @classmethod
    def parse_datetime_fields(cls, v: Any) -> datetime | None:
        """Parse datetime fields using the centralized date_utils."""
        if v is None:
            return None
        return parse_timestamp(v)

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> WorkoutKind:
        return WorkoutKind.coerce(v)

    class Settings:
        name = "workouts"
        indexes = [
            IndexModel(
                [("start_time", DESCENDING)],
                name="workouts_start_time_idx",
            ),
        ]

    class Config:
        extra = "allow"


class WorkoutRoute(Document):
    """Downsampled GPS route owned by exactly one workout.

    Samples are stored as an opaque BSON blob in ``route_data``; use
    ``encode_samples``/``decoded_route`` rather than touching the bytes.
    """

    workout_id: Indexed(str, unique=True)
    route_data: bytes | None = None
    point_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    class Settings:
        name = "workout_routes"
        indexes = [
            IndexModel(
                [("created_at", ASCENDING)],
                name="workout_routes_created_idx",
            ),
        ]

    @staticmethod
    def encode_samples(samples: list[RouteSample]) -> bytes:
        points = [[s.latitude, s.longitude, s.timestamp] for s in samples]
        return bson.encode({"v": 1, "points": points})

    @staticmethod
    def decode_samples(data: bytes | None) -> list[RouteSample]:
        if not data:
            return []
        document = bson.decode(data)
        return [
            RouteSample(latitude=lat, longitude=lon, timestamp=ts)
            for lat, lon, ts in document.get("points", [])
        ]

    @classmethod
    def from_samples(cls, workout_id: str, samples: list[RouteSample]) -> WorkoutRoute:
        return cls(
            workout_id=workout_id,
            route_data=cls.encode_samples(samples),
            point_count=len(samples),
        )

    @property
    def decoded_route(self) -> list[RouteSample]:
        return self.decode_samples(self.route_data)


class Job(Document):
    """Background job status, polled by clients for import progress."""

    job_type: str
    operation_id: str | None = None

    status: str = "pending"  # "pending", "running", "completed", "failed"
    stage: str = "queued"
    progress: float = 0.0  # 0-100
    message: str = ""

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    error: str | None = None
    result: dict[str, Any] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    class Settings:
        name = "jobs"
        indexes = [
            IndexModel(
                [("job_type", ASCENDING), ("created_at", DESCENDING)],
                name="jobs_type_created_idx",
            ),
            IndexModel(
                [("status", ASCENDING)],
                name="jobs_status_idx",
            ),
        ]

    class Config:
        extra = "allow"


ALL_DOCUMENT_MODELS = [
    Workout,
    WorkoutRoute,
    Job,
]
