"""
Centralized date and time utilities for the application.

This module provides a focused set of functions for handling dates, times,
and timestamps in a consistent and timezone-aware manner. Workout start
times, route sample timestamps and gate bookkeeping all flow through here.

Key Features:
-   **Timezone-Aware Parsing**: All timestamps are handled as timezone-aware
    datetime objects, defaulting to UTC to prevent common timezone-related bugs.
-   **Epoch Conversion**: Route samples travel as POSIX seconds; helpers
    convert both ways without losing the UTC offset.
-   **Dependency Abstraction**: Wraps date-related libraries like `dateutil` to
    provide a stable, internal API for the rest of the application.
"""

import logging
from datetime import UTC, datetime

from dateutil import parser

logger = logging.getLogger(__name__)


def get_current_utc_time() -> datetime:
    """Return the current time as a timezone-aware datetime object in UTC."""
    return datetime.now(UTC)


def parse_timestamp(ts: str | float | datetime | None) -> datetime | None:
    """
    Parse a timestamp string, epoch number or datetime object and ensure it is
    timezone-aware, defaulting to UTC.

    This function is the primary entry point for converting external timestamps
    into a consistent, internal format.

    Args:
        ts: The timestamp to parse, either as an ISO 8601 string, POSIX
            seconds or a datetime object.

    Returns:
        A timezone-aware datetime object, or None if parsing fails.
    """
    if ts is None or ts == "":
        logger.debug("Received empty timestamp; returning None.")
        return None

    if isinstance(ts, datetime):
        # If the datetime object is naive, assume UTC.
        if ts.tzinfo is None:
            return ts.replace(tzinfo=UTC)
        return ts

    if isinstance(ts, bool):
        logger.warning("Refusing to parse boolean timestamp %r", ts)
        return None

    if isinstance(ts, int | float):
        try:
            return datetime.fromtimestamp(float(ts), tz=UTC)
        except (OverflowError, OSError, ValueError) as e:
            logger.warning("Failed to convert epoch timestamp '%s': %s", ts, e)
            return None

    try:
        # Use dateutil.parser for robust parsing of various ISO 8601 formats.
        parsed_time = parser.isoparse(ts)
        # If the parsed time is naive, assume it's in UTC.
        if parsed_time.tzinfo is None:
            return parsed_time.replace(tzinfo=UTC)
        return parsed_time
    except (ValueError, TypeError) as e:
        logger.warning("Failed to parse timestamp '%s': %s", ts, e)
        return None


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Return the datetime as an explicit UTC-aware value."""

    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def to_epoch_seconds(dt: datetime) -> float:
    """Return POSIX seconds for a datetime, treating naive values as UTC."""
    return (ensure_utc(dt) or dt).timestamp()


def format_api_datetime(dt: datetime) -> str:
    """Format a datetime as an RFC3339 string with a trailing 'Z'."""
    utc = ensure_utc(dt) or dt
    utc = utc.replace(microsecond=0)
    return utc.isoformat().replace("+00:00", "Z")
