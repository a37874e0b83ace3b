"""Workout import from the health service.

Key guarantees:
- Insert-only: stored workouts are never modified, apart from linking a
  freshly attached route.
- No duplicates: a candidate is skipped when its health identity or its
  fuzzy key is already known, including candidates accepted earlier in the
  same run.
- Bounded work: commits happen in batches, routes are fetched a few at a
  time with a timeout each, and the gate keeps imports from overlapping or
  repeating too often.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from core.exceptions import (
    AuthorizationError,
    SourceReadError,
    StoreWriteError,
    TrainStateError,
)
from date_utils import get_current_utc_time, to_epoch_seconds
from workouts.events import CompositeProgressSink, ProgressSink
from workouts.models import (
    CandidateWorkout,
    ImportResult,
    RecentHealthWorkout,
    SingleImportResult,
)
from workouts.services.duplicate_index import DuplicateIndex
from workouts.services.workout_import_service_config import ImportSettings
from workouts.services.workout_import_service_processing import (
    BatchImportOutcome,
    import_candidates,
)
from workouts.services.workout_import_service_routes import (
    RouteAttachmentOutcome,
    RouteAttachmentScheduler,
)

if TYPE_CHECKING:
    from workouts.models import RouteSample
    from workouts.network import NetworkStatusProvider
    from workouts.services.workout_import_gate import ImportGate
    from workouts.services.workout_import_service_single import (
        SingleWorkoutImporter,
    )
    from workouts.store import WorkoutStore

logger = logging.getLogger(__name__)


class WorkoutSource(Protocol):
    async def fetch_workouts(
        self,
        *,
        started_after: datetime | None = None,
        limit: int | None = None,
    ) -> list[CandidateWorkout]: ...

    async def fetch_workout(self, health_uuid: str) -> CandidateWorkout | None: ...

    def iter_route_samples(
        self,
        health_uuid: str,
    ) -> AsyncIterator[list[RouteSample]]: ...

    async def has_workouts_since(self, since: datetime | None) -> bool: ...


class WorkoutImportPipeline:
    """One import run: read, dedupe, commit, then attach routes."""

    def __init__(
        self,
        source: WorkoutSource,
        store: WorkoutStore,
        progress: ProgressSink | None = None,
        settings: ImportSettings | None = None,
    ) -> None:
        self.source = source
        self.store = store
        self.progress = CompositeProgressSink([progress])
        self.settings = settings or ImportSettings()

    async def has_new_candidates(self) -> bool:
        latest = await self.store.latest_start_time()
        return await self.source.has_workouts_since(latest)

    async def run(self) -> ImportResult:
        result = ImportResult(status="failed", started_at=get_current_utc_time())
        batch_outcome = BatchImportOutcome()
        route_outcome = RouteAttachmentOutcome()
        try:
            candidates = await self.source.fetch_workouts()
            result.found = len(candidates)
            ordered = sorted(
                candidates,
                key=lambda c: to_epoch_seconds(c.start_time),
                reverse=True,
            )

            index = DuplicateIndex.build(await self.store.fetch_all())
            logger.info(
                "Importing %d candidate workouts against %d stored",
                len(ordered),
                len(index),
            )
            await import_candidates(
                ordered,
                index,
                store=self.store,
                progress=self.progress,
                settings=self.settings,
                outcome=batch_outcome,
            )

            if batch_outcome.accepted:
                await self.progress.routing_started()
                scheduler = RouteAttachmentScheduler(
                    self.source,
                    self.store,
                    self.settings,
                )
                await scheduler.attach(batch_outcome.routing, route_outcome)

            result.status = "completed"
        except (SourceReadError, AuthorizationError) as exc:
            logger.warning("Workout import could not read source: %s", exc.message)
            result.error = exc.message
            result.reason = "source_read_failed"
        except StoreWriteError as exc:
            logger.error("Workout import could not write: %s", exc.message)
            result.error = exc.message
            result.reason = "store_write_failed"
        except TrainStateError as exc:
            logger.exception("Workout import failed")
            result.error = exc.message
        except asyncio.CancelledError:
            result.reason = "cancelled"
            raise
        except Exception as exc:
            logger.exception("Unexpected error during workout import")
            result.error = str(exc)
        finally:
            result.accepted = len(batch_outcome.accepted)
            result.accepted_ids = [w.workout_id for w in batch_outcome.accepted]
            result.skipped_existing = batch_outcome.skipped_existing
            result.skipped_fuzzy = batch_outcome.skipped_fuzzy
            result.routes_attached = route_outcome.attached
            result.routes_missing = route_outcome.no_data
            result.routes_failed = route_outcome.failed
            result.completed_at = get_current_utc_time()
            await self.progress.completed(result)
        return result


PipelineFactory = Callable[[ProgressSink | None], WorkoutImportPipeline]


class WorkoutImportService:
    """Entry point for import requests from the API and the scheduler."""

    def __init__(
        self,
        gate: ImportGate,
        pipeline_factory: PipelineFactory,
        network_status: NetworkStatusProvider | None = None,
        single_importer: SingleWorkoutImporter | None = None,
    ) -> None:
        self.gate = gate
        self._pipeline_factory = pipeline_factory
        self._network_status = network_status
        self._single_importer = single_importer
        self._tasks: set[asyncio.Task] = set()

    async def _deferred_for_network(self) -> ImportResult | None:
        if self._network_status is None:
            return None
        status = await self._network_status.current()
        if status.is_safe_to_use_data:
            return None
        reason = "offline" if not status.connected else "metered_network"
        logger.info("Deferring workout import: %s", reason)
        now = get_current_utc_time()
        return ImportResult(
            status="deferred",
            reason=reason,
            started_at=now,
            completed_at=now,
        )

    async def request_import(
        self,
        *,
        force: bool = False,
        progress: ProgressSink | None = None,
        wait: bool = True,
    ) -> ImportResult:
        """Ask for an import run.

        Dropped and deferred requests return immediately with a ``skipped``
        or ``deferred`` result. With ``wait=False`` an admitted run continues
        in the background and a ``started`` result is returned.
        """
        if not force:
            deferred = await self._deferred_for_network()
            if deferred is not None:
                return deferred

        pipeline = self._pipeline_factory(progress)
        if wait:
            return await self.gate.run(
                pipeline.run,
                force=force,
                precheck=pipeline.has_new_candidates,
            )

        reason = await self.gate.admit(
            force=force,
            precheck=pipeline.has_new_candidates,
        )
        now = get_current_utc_time()
        if reason is not None:
            return ImportResult(
                status="skipped",
                reason=reason,
                started_at=now,
                completed_at=now,
            )
        task = asyncio.create_task(self._run_admitted(pipeline))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return ImportResult(status="started", started_at=now)

    async def _run_admitted(self, pipeline: WorkoutImportPipeline) -> ImportResult:
        result: ImportResult | None = None
        try:
            result = await pipeline.run()
        finally:
            await self.gate.release(result)
        return result

    async def import_single(
        self,
        health_uuid: str,
        *,
        attach_to: str | None = None,
    ) -> SingleImportResult:
        """Import one provider workout, or link it to ``attach_to``.

        Refused with ``already_running`` while a full import holds the gate.
        """
        if self._single_importer is None:
            msg = "Single workout import is not configured"
            raise TrainStateError(msg)

        async with self.gate.hold() as held:
            if not held:
                return SingleImportResult(
                    status="skipped",
                    health_uuid=health_uuid,
                    workout_id=attach_to,
                    reason="already_running",
                )
            if attach_to:
                return await self._single_importer.attach_workout(
                    health_uuid,
                    attach_to,
                )
            return await self._single_importer.import_workout(health_uuid)

    async def wait_idle(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()

    def snapshot(self) -> dict:
        return {**self.gate.snapshot(), "running_tasks": len(self._tasks)}


async def fetch_recent_workouts(
    source,
    store: WorkoutStore,
    *,
    limit: int = 10,
) -> list[RecentHealthWorkout]:
    """Preview the newest provider workouts, flagging the imported ones."""
    candidates = await source.fetch_workouts(limit=limit)
    candidates = sorted(
        candidates,
        key=lambda c: to_epoch_seconds(c.start_time),
        reverse=True,
    )[:limit]
    imported = await store.find_by_health_uuids(c.health_uuid for c in candidates)
    return [
        RecentHealthWorkout(
            health_uuid=c.health_uuid,
            kind=c.kind,
            activity_type=c.activity_type,
            start_time=c.start_time,
            duration=c.duration,
            energy_kcal=c.energy_kcal,
            distance_km=(c.distance_m / 1000.0) if c.distance_m is not None else None,
            source_name=c.source_name,
            imported=c.health_uuid in imported,
        )
        for c in candidates
    ]


__all__ = [
    "PipelineFactory",
    "WorkoutImportPipeline",
    "WorkoutImportService",
    "WorkoutSource",
    "fetch_recent_workouts",
]
