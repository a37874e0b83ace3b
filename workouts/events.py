"""
Progress reporting for workout imports.

The pipeline reports through a ``ProgressSink``. Sinks fan the same three
events out to the log, to a ``Job`` document polled by the UI and to the
Redis pub/sub channel ``workout_import_updates``. A failing sink is logged
and never interrupts an import.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from beanie import PydanticObjectId

from core.redis import get_shared_redis

if TYPE_CHECKING:
    from core.jobs import JobHandle
    from workouts.models import ImportResult

logger = logging.getLogger(__name__)

# Redis channel name for import updates
WORKOUT_IMPORT_UPDATES_CHANNEL = "workout_import_updates"


class ProgressSink(Protocol):
    async def progress(self, fraction: float) -> None: ...

    async def routing_started(self) -> None: ...

    async def completed(self, result: ImportResult) -> None: ...


class LoggingProgressSink:
    async def progress(self, fraction: float) -> None:
        logger.info("Workout import %.0f%% complete", fraction * 100)

    async def routing_started(self) -> None:
        logger.info("Workout import attaching routes")

    async def completed(self, result: ImportResult) -> None:
        logger.info(
            "Workout import %s: found=%d accepted=%d skipped=%d routes=%d",
            result.status,
            result.found,
            result.accepted,
            result.skipped,
            result.routes_attached,
        )


class JobProgressSink:
    """Mirror import progress into a ``Job`` document."""

    def __init__(self, handle: JobHandle) -> None:
        self.handle = handle

    @property
    def job_id(self) -> str | None:
        job_id = getattr(self.handle.job, "id", None)
        return str(job_id) if job_id is not None else None

    async def progress(self, fraction: float) -> None:
        await self.handle.update(
            status="running",
            stage="importing",
            message="Importing workouts",
            progress=round(fraction * 90.0, 1),
        )

    async def routing_started(self) -> None:
        await self.handle.update(
            stage="routes",
            message="Attaching routes",
            progress=90.0,
        )

    async def completed(self, result: ImportResult) -> None:
        payload = result.to_dict()
        if result.status == "failed":
            await self.handle.fail(
                result.error or "Import failed",
                message="Workout import failed",
                result=payload,
            )
            return
        if result.status == "completed":
            message = f"Imported {result.accepted} workouts"
            await self.handle.complete(message=message, result=payload)
            return
        await self.handle.complete(
            message=f"Import {result.status}: {result.reason or 'no reason'}",
            result=payload,
            stage=result.status,
        )


def json_serializer(obj: Any) -> Any:
    """JSON serializer for objects not serializable by default json code."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, PydanticObjectId):
        return str(obj)
    msg = f"Type {type(obj)} not serializable"
    raise TypeError(msg)


class RedisProgressPublisher:
    """Publish import events to Redis pub/sub for live UI updates."""

    def __init__(
        self,
        *,
        job_id: str | None = None,
        channel: str = WORKOUT_IMPORT_UPDATES_CHANNEL,
    ) -> None:
        self.job_id = job_id
        self.channel = channel

    async def _publish(self, event_type: str, data: dict[str, Any]) -> None:
        client = await get_shared_redis()
        event_data = {
            "event_type": event_type,
            "job_id": self.job_id,
            "timestamp": datetime.now(UTC),
            **data,
        }
        message = json.dumps(event_data, default=json_serializer)
        subscribers = await client.publish(self.channel, message)
        logger.debug(
            "Published %s to %d subscriber(s)",
            event_type,
            subscribers,
        )

    async def progress(self, fraction: float) -> None:
        await self._publish("progress", {"progress": fraction})

    async def routing_started(self) -> None:
        await self._publish("routing_started", {})

    async def completed(self, result: ImportResult) -> None:
        await self._publish("completed", {"result": result.to_dict()})


class CompositeProgressSink:
    """Forward events to several sinks, containing each sink's failures."""

    def __init__(self, sinks: Iterable[ProgressSink | None] = ()) -> None:
        self.sinks = [sink for sink in sinks if sink is not None]

    async def _each(self, event: str, *args: Any) -> None:
        for sink in self.sinks:
            try:
                await getattr(sink, event)(*args)
            except Exception:
                logger.exception(
                    "Progress sink %s failed on %s",
                    type(sink).__name__,
                    event,
                )

    async def progress(self, fraction: float) -> None:
        await self._each("progress", fraction)

    async def routing_started(self) -> None:
        await self._each("routing_started")

    async def completed(self, result: ImportResult) -> None:
        await self._each("completed", result)


__all__ = [
    "WORKOUT_IMPORT_UPDATES_CHANNEL",
    "CompositeProgressSink",
    "JobProgressSink",
    "LoggingProgressSink",
    "ProgressSink",
    "RedisProgressPublisher",
    "json_serializer",
]
