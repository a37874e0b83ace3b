"""Health service API client for workout and route data."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from aiohttp import ClientResponseError

from config import get_health_config
from core.exceptions import (
    HealthAuthorizationError,
    HealthDataUnavailableError,
    SourceReadError,
    UnexpectedHealthDataError,
)
from core.health_normalization import (
    normalize_route_locations,
    normalize_workout_payload,
)
from core.http.retry import TRANSIENT_HTTP_ERRORS, retry_async
from core.http.session import get_session
from date_utils import format_api_datetime

if TYPE_CHECKING:
    from datetime import datetime

    import aiohttp

    from workouts.models import CandidateWorkout, RouteSample

logger = logging.getLogger(__name__)

# Upper bound on route pages; guards against a provider that never says done.
MAX_ROUTE_PAGES = 200


def _raise_for_provider_status(exc: ClientResponseError, what: str) -> None:
    if exc.status in (401, 403):
        msg = "Health service denied workout read access"
        raise HealthAuthorizationError(msg, {"status": exc.status}) from exc
    if exc.status == 503:
        msg = "Health data is unavailable"
        raise HealthDataUnavailableError(msg, {"status": exc.status}) from exc
    if exc.status >= 500:
        raise exc
    msg = f"Health service rejected {what} request ({exc.status})"
    raise SourceReadError(msg, {"status": exc.status}) from exc


class HealthServiceClient:
    """Client for the health service workout endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        base_url: str | None = None,
        token: str | None = None,
        route_page_size: int | None = None,
    ) -> None:
        config = get_health_config()
        self._session = session
        self._base_url = (base_url or config["base_url"]).rstrip("/")
        self._token = token if token is not None else config["token"]
        self._route_page_size = route_page_size or config["route_page_size"]

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = await get_session()
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @retry_async(max_retries=3, retry_delay=1.5)
    async def _get_json(self, path: str, params: dict[str, Any], what: str) -> Any:
        session = await self._get_session()
        url = f"{self._base_url}{path}"
        try:
            async with session.get(
                url,
                headers=self._headers(),
                params=params,
            ) as response:
                response.raise_for_status()
                return await response.json()
        except ClientResponseError as exc:
            logger.warning("Health service returned %s for %s", exc.status, what)
            _raise_for_provider_status(exc, what)
            raise

    async def _query_workouts(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            payload = await self._get_json("/workouts", params, "workouts")
        except TRANSIENT_HTTP_ERRORS as exc:
            msg = f"Unable to read workouts from the health service: {exc}"
            raise SourceReadError(msg) from exc

        if isinstance(payload, dict):
            payload = payload.get("workouts")
        if not isinstance(payload, list):
            msg = f"Unexpected /workouts response type: {type(payload).__name__}"
            raise UnexpectedHealthDataError(msg)
        return payload

    async def fetch_workouts(
        self,
        *,
        started_after: datetime | None = None,
        limit: int | None = None,
    ) -> list[CandidateWorkout]:
        """Return provider workouts, most recent first."""
        params: dict[str, Any] = {"sort": "-startDate"}
        if started_after is not None:
            params["startedAfter"] = format_api_datetime(started_after)
        if limit is not None:
            params["limit"] = int(limit)

        raw_workouts = await self._query_workouts(params)
        candidates: list[CandidateWorkout] = []
        dropped = 0
        for raw in raw_workouts:
            candidate = normalize_workout_payload(raw)
            if candidate is None:
                dropped += 1
                continue
            candidates.append(candidate)
        if dropped:
            logger.info("Dropped %d unusable workout payloads", dropped)
        return candidates

    async def fetch_workout(self, health_uuid: str) -> CandidateWorkout | None:
        """Return one provider workout, or None when the provider has no such id."""
        try:
            payload = await self._get_json(
                f"/workouts/{health_uuid}",
                {},
                f"workout {health_uuid}",
            )
        except SourceReadError as exc:
            if exc.details.get("status") == 404:
                return None
            raise
        except TRANSIENT_HTTP_ERRORS as exc:
            msg = f"Unable to read workout {health_uuid} from the health service: {exc}"
            raise SourceReadError(msg, {"health_uuid": health_uuid}) from exc

        if isinstance(payload, dict) and isinstance(payload.get("workout"), dict):
            payload = payload["workout"]
        candidate = normalize_workout_payload(payload)
        if candidate is None:
            msg = f"Unexpected /workouts/{health_uuid} response"
            raise UnexpectedHealthDataError(msg, {"health_uuid": health_uuid})
        return candidate

    async def has_workouts_since(self, since: datetime | None) -> bool:
        """Cheap check for any workout that started after ``since``."""
        workouts = await self.fetch_workouts(started_after=since, limit=1)
        return bool(workouts)

    async def iter_route_samples(
        self,
        health_uuid: str,
    ) -> AsyncIterator[list[RouteSample]]:
        """Yield route samples page by page until the provider reports done."""
        cursor: str | None = None
        for _ in range(MAX_ROUTE_PAGES):
            params: dict[str, Any] = {"limit": self._route_page_size}
            if cursor:
                params["cursor"] = cursor
            payload = await self._get_json(
                f"/workouts/{health_uuid}/route",
                params,
                f"route {health_uuid}",
            )
            if not isinstance(payload, dict):
                msg = f"Unexpected route response type: {type(payload).__name__}"
                raise UnexpectedHealthDataError(msg, {"health_uuid": health_uuid})

            samples = normalize_route_locations(payload.get("locations"))
            if samples:
                yield samples
            if payload.get("done", True):
                return
            cursor = payload.get("next")
            if not cursor:
                return

        logger.warning(
            "Route for %s exceeded %d pages; truncating",
            health_uuid,
            MAX_ROUTE_PAGES,
        )


__all__ = ["HealthServiceClient", "MAX_ROUTE_PAGES"]
