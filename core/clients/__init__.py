"""External service clients."""

from core.clients.health import HealthServiceClient

__all__ = ["HealthServiceClient"]
