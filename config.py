"""Centralized configuration for environment variables and external APIs.

This module is the single source of truth for configuration used across the
application. Import constants from here rather than calling os.getenv directly
in multiple places.

NOTE: Import pipeline tunables (batch sizes, cool-down intervals, dedup
granularities) live in workouts.services.workout_import_service_config.
"""

from __future__ import annotations

import os
from typing import Any, Final

from dotenv import load_dotenv

# Load environment variables from .env if present
load_dotenv()


# --- Health service API Configuration ---
HEALTH_API_BASE_URL: Final[str] = os.getenv(
    "HEALTH_API_BASE_URL",
    "http://localhost:8787/v1",
).rstrip("/")
HEALTH_API_TOKEN: Final[str | None] = os.getenv("HEALTH_API_TOKEN")

# Page size requested when streaming route locations
HEALTH_ROUTE_PAGE_SIZE: Final[int] = int(os.getenv("HEALTH_ROUTE_PAGE_SIZE", "500"))


def get_health_config() -> dict[str, Any]:
    """Get health service API configuration from environment variables.

    Returns:
        Dictionary containing:
            - base_url: str
            - token: str
            - route_page_size: int
    """
    return {
        "base_url": HEALTH_API_BASE_URL,
        "token": HEALTH_API_TOKEN or "",
        "route_page_size": HEALTH_ROUTE_PAGE_SIZE,
    }


__all__ = [
    "HEALTH_API_BASE_URL",
    "HEALTH_API_TOKEN",
    "HEALTH_ROUTE_PAGE_SIZE",
    "get_health_config",
]
