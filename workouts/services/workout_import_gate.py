"""Admission control for workout imports.

Only one import runs at a time. After a run the gate cools down: requests
arriving shortly after are dropped outright, and later ones inside the
full import window must first show that new workouts exist.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any

from date_utils import get_current_utc_time
from workouts.models import ImportResult
from workouts.services.workout_import_service_config import ImportSettings

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)

PreCheck = Callable[[], Awaitable[bool | None]]


class GateState(str, Enum):
    IDLE = "idle"
    IMPORTING = "importing"
    COOLING_DOWN = "cooling_down"


class ImportGate:
    """State machine guarding the import pipeline.

    ``IDLE -> IMPORTING -> COOLING_DOWN -> IDLE``; every transition happens
    while holding ``_lock``. The pre-check runs outside the lock with the
    slot already reserved, so concurrent requests see ``IMPORTING``.
    """

    def __init__(
        self,
        settings: ImportSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or ImportSettings()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._state = GateState.IDLE
        self._last_completed: float | None = None
        self._last_completed_at: datetime | None = None
        self._last_result: ImportResult | None = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def cooldown_enabled(self) -> bool:
        return self._settings.min_full_import_interval > 0

    def _expire_cooldown(self) -> None:
        if self._state is not GateState.COOLING_DOWN:
            return
        if self._last_completed is None or (
            self._clock() - self._last_completed
            >= self._settings.min_full_import_interval
        ):
            self._state = GateState.IDLE

    async def admit(
        self,
        *,
        force: bool = False,
        precheck: PreCheck | None = None,
    ) -> str | None:
        """Reserve the import slot.

        Returns None when the caller may run, otherwise the reason the
        request was dropped. An admitted caller must call ``release``.
        """
        async with self._lock:
            self._expire_cooldown()
            if self._state is GateState.IMPORTING:
                return "already_running"
            if self._state is GateState.IDLE or force:
                self._state = GateState.IMPORTING
                return None

            elapsed = self._clock() - (self._last_completed or 0.0)
            if elapsed < self._settings.min_refresh_interval:
                return "refresh_debounced"
            reserved_completion = self._last_completed
            self._state = GateState.IMPORTING

        admitted = False
        try:
            if precheck is not None:
                admitted = (await precheck()) is True
        except Exception:
            logger.warning("Import pre-check failed; dropping request", exc_info=True)
        finally:
            if not admitted:
                async with self._lock:
                    self._state = GateState.COOLING_DOWN
                    self._last_completed = reserved_completion
        return None if admitted else "no_new_workouts"

    async def release(self, result: ImportResult | None = None) -> None:
        async with self._lock:
            self._last_completed = self._clock()
            self._last_completed_at = get_current_utc_time()
            if result is not None:
                self._last_result = result
            self._state = (
                GateState.COOLING_DOWN if self.cooldown_enabled else GateState.IDLE
            )

    async def run(
        self,
        job: Callable[[], Awaitable[ImportResult]],
        *,
        force: bool = False,
        precheck: PreCheck | None = None,
    ) -> ImportResult:
        """Run ``job`` if admitted, otherwise return a skipped result."""
        reason = await self.admit(force=force, precheck=precheck)
        if reason is not None:
            logger.info("Workout import request dropped: %s", reason)
            now = get_current_utc_time()
            return ImportResult(
                status="skipped",
                reason=reason,
                started_at=now,
                completed_at=now,
            )

        result: ImportResult | None = None
        try:
            result = await job()
        finally:
            await self.release(result)
        return result

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[bool]:
        """Hold the slot for a one-off write without touching cooldown timing.

        Yields False when an import is already running; otherwise the
        previous state is restored on exit.
        """
        async with self._lock:
            self._expire_cooldown()
            previous: GateState | None = None
            if self._state is not GateState.IMPORTING:
                previous = self._state
                self._state = GateState.IMPORTING

        if previous is None:
            yield False
            return
        try:
            yield True
        finally:
            async with self._lock:
                self._state = previous

    def snapshot(self) -> dict[str, Any]:
        remaining = 0.0
        if self._state is GateState.COOLING_DOWN and self._last_completed is not None:
            remaining = max(
                0.0,
                self._settings.min_full_import_interval
                - (self._clock() - self._last_completed),
            )
        return {
            "state": self._state.value,
            "last_completed_at": (
                self._last_completed_at.isoformat() if self._last_completed_at else None
            ),
            "cooldown_remaining_seconds": round(remaining, 1),
            "last_result": self._last_result.to_dict() if self._last_result else None,
        }


__all__ = ["GateState", "ImportGate", "PreCheck"]
