"""Batch acceptance and commit of candidate workouts."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from db.models import Workout
from workouts.services.workout_import_service_config import ImportSettings
from workouts.store import commit_shielded

if TYPE_CHECKING:
    from workouts.events import ProgressSink
    from workouts.models import CandidateWorkout
    from workouts.services.duplicate_index import DuplicateIndex
    from workouts.store import WorkoutStore

logger = logging.getLogger(__name__)


@dataclass
class BatchImportOutcome:
    accepted: list[Workout] = field(default_factory=list)
    # (health_uuid, stored workout) pairs that should get a route
    routing: list[tuple[str, Workout]] = field(default_factory=list)
    skipped_existing: int = 0
    skipped_fuzzy: int = 0
    batches_committed: int = 0


def chunked(items: list, size: int) -> list[list]:
    return [items[i : i + size] for i in range(0, len(items), size)]


async def _commit_batch(
    store: WorkoutStore,
    accepted_batch: list[Workout],
    routing_batch: list[tuple[str, Workout]],
    outcome: BatchImportOutcome,
) -> None:
    await store.insert_workouts(accepted_batch)
    outcome.accepted.extend(accepted_batch)
    outcome.routing.extend(routing_batch)


def build_local_workout(
    candidate: CandidateWorkout,
    settings: ImportSettings,
) -> Workout:
    return Workout(
        health_uuid=candidate.health_uuid,
        kind=candidate.kind,
        start_time=candidate.start_time,
        duration=candidate.duration,
        energy_kcal=candidate.energy_kcal,
        distance_m=candidate.distance_m,
        notes=settings.import_note,
        activity_type=candidate.activity_type,
    )


async def import_candidates(
    candidates: list[CandidateWorkout],
    index: DuplicateIndex,
    *,
    store: WorkoutStore,
    progress: ProgressSink,
    settings: ImportSettings | None = None,
    outcome: BatchImportOutcome | None = None,
) -> BatchImportOutcome:
    """Accept non-duplicate candidates and commit them one batch at a time.

    Candidates are expected most recent first; when two candidates share a
    fuzzy key the earlier one wins. A failed commit raises ``StoreWriteError``
    and leaves earlier batches in place. Pass ``outcome`` to keep the counts
    collected before such a failure.

    Progress is published after each batch only once something has been
    accepted, so a run made entirely of duplicates reports no progress.
    """
    settings = settings or ImportSettings()
    outcome = outcome if outcome is not None else BatchImportOutcome()
    batches = chunked(candidates, settings.import_batch_size)
    total = len(batches)

    for batch_number, batch in enumerate(batches, start=1):
        accepted_batch: list[Workout] = []
        routing_batch: list[tuple[str, Workout]] = []
        for candidate in batch:
            reason = index.reason(candidate)
            if reason == "health_uuid":
                outcome.skipped_existing += 1
                continue
            if reason == "fuzzy":
                outcome.skipped_fuzzy += 1
                continue

            workout = build_local_workout(candidate, settings)
            index.insert(candidate)
            accepted_batch.append(workout)
            if settings.wants_route(candidate.kind, candidate.duration):
                routing_batch.append((candidate.health_uuid, workout))

        if accepted_batch:
            await commit_shielded(
                _commit_batch(store, accepted_batch, routing_batch, outcome),
            )
        outcome.batches_committed += 1

        logger.debug(
            "Workout batch %d/%d: %d accepted",
            batch_number,
            total,
            len(accepted_batch),
        )
        await asyncio.sleep(0)
        # nothing accepted yet means nothing to report
        if outcome.accepted:
            await progress.progress(batch_number / total)

    return outcome


__all__ = [
    "BatchImportOutcome",
    "build_local_workout",
    "chunked",
    "import_candidates",
]
