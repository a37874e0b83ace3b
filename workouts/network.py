"""Network conditions that decide whether a background import may start."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

NETWORK_ENV_VAR = "WORKOUT_IMPORT_NETWORK"


@dataclass(frozen=True)
class NetworkStatus:
    connected: bool = True
    expensive: bool = False
    constrained: bool = False

    @property
    def is_safe_to_use_data(self) -> bool:
        return self.connected and not self.expensive and not self.constrained

    @classmethod
    def from_label(cls, label: str | None) -> NetworkStatus:
        """Map a link label (wifi, wired, cellular, constrained, offline)."""
        value = (label or "").strip().lower()
        if value in ("", "wifi", "wired", "ethernet"):
            return cls()
        if value == "cellular":
            return cls(expensive=True)
        if value in ("constrained", "low_data"):
            return cls(constrained=True)
        if value in ("offline", "disconnected", "none"):
            return cls(connected=False)
        logger.warning("Unknown network label %r; assuming unrestricted", label)
        return cls()


class NetworkStatusProvider(Protocol):
    async def current(self) -> NetworkStatus: ...


class EnvNetworkStatusProvider:
    """Read the current link type from ``WORKOUT_IMPORT_NETWORK`` on each call."""

    def __init__(self, env_var: str = NETWORK_ENV_VAR) -> None:
        self.env_var = env_var

    async def current(self) -> NetworkStatus:
        return NetworkStatus.from_label(os.getenv(self.env_var))


__all__ = [
    "EnvNetworkStatusProvider",
    "NetworkStatus",
    "NetworkStatusProvider",
]
