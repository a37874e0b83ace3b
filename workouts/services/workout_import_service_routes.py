"""Route fetching and attachment for freshly imported workouts."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol

from core.exceptions import StoreWriteError
from workouts.services.route_samples import prepare_route
from workouts.services.workout_import_service_config import ImportSettings
from workouts.services.workout_import_service_processing import chunked
from workouts.store import commit_shielded

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from db.models import Workout
    from workouts.models import RouteSample
    from workouts.store import WorkoutStore

logger = logging.getLogger(__name__)

AttachStatus = Literal["attached", "no_data", "failed"]


class RouteSource(Protocol):
    def iter_route_samples(
        self,
        health_uuid: str,
    ) -> AsyncIterator[list[RouteSample]]: ...


@dataclass
class RouteAttachmentOutcome:
    attached: int = 0
    no_data: int = 0
    failed: int = 0

    def record(self, status: AttachStatus) -> None:
        if status == "attached":
            self.attached += 1
        elif status == "no_data":
            self.no_data += 1
        else:
            self.failed += 1


class RouteAttachmentScheduler:
    """Attach routes in small concurrent batches with a pause in between."""

    def __init__(
        self,
        source: RouteSource,
        store: WorkoutStore,
        settings: ImportSettings | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._settings = settings or ImportSettings()

    async def _collect(self, health_uuid: str) -> list[RouteSample]:
        samples: list[RouteSample] = []
        async for page in self._source.iter_route_samples(health_uuid):
            samples.extend(page)
        return samples

    async def _attach_one(self, health_uuid: str, workout: Workout) -> AttachStatus:
        try:
            async with asyncio.timeout(self._settings.route_fetch_timeout):
                raw = await self._collect(health_uuid)
        except TimeoutError:
            logger.info(
                "Route fetch for %s timed out after %.0fs",
                health_uuid,
                self._settings.route_fetch_timeout,
            )
            return "no_data"
        except Exception as exc:
            logger.warning("Route fetch for %s failed: %s", health_uuid, exc)
            return "failed"

        route = prepare_route(raw, self._settings.route_max_points)
        if not route:
            return "no_data"

        await commit_shielded(self._store.insert_route(workout, route))
        return "attached"

    async def attach(
        self,
        routing: list[tuple[str, Workout]],
        outcome: RouteAttachmentOutcome | None = None,
    ) -> RouteAttachmentOutcome:
        """Fetch, clean and persist routes for ``routing``.

        Provider problems are counted per workout and never abort the run.
        A store failure lets the current batch finish, then raises
        ``StoreWriteError`` without starting another batch.
        """
        outcome = outcome if outcome is not None else RouteAttachmentOutcome()
        batches = chunked(routing, self._settings.route_batch_size)

        for batch_number, batch in enumerate(batches, start=1):
            results = await asyncio.gather(
                *(self._attach_one(health_uuid, w) for health_uuid, w in batch),
                return_exceptions=True,
            )
            store_error: StoreWriteError | None = None
            for (health_uuid, _), result in zip(batch, results, strict=True):
                if isinstance(result, StoreWriteError):
                    logger.error("Route store failed for %s: %s", health_uuid, result)
                    outcome.record("failed")
                    store_error = store_error or result
                elif isinstance(result, BaseException):
                    logger.warning(
                        "Route attachment for %s failed: %s",
                        health_uuid,
                        result,
                    )
                    outcome.record("failed")
                else:
                    outcome.record(result)

            if store_error is not None:
                raise store_error
            if batch_number < len(batches) and self._settings.route_batch_pause > 0:
                await asyncio.sleep(self._settings.route_batch_pause)

        return outcome


__all__ = [
    "RouteAttachmentOutcome",
    "RouteAttachmentScheduler",
    "RouteSource",
]
