"""
Centralized Redis connection configuration and shared client.

Import progress is fanned out over Redis pub/sub; this module is the single
place that knows how to reach Redis.
"""

from __future__ import annotations

import logging
import os
from typing import Final

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL: Final[str] = "redis://redis:6379"
REDIS_URL_ENV_VAR: Final[str] = "REDIS_URL"


class RedisClientState:
    """State container for the Redis client to avoid global variables."""

    client: aioredis.Redis | None = None


def get_redis_url() -> str:
    """Return the Redis URL from ``REDIS_URL`` or the container default."""
    redis_url = os.getenv(REDIS_URL_ENV_VAR, "").strip()
    return redis_url or DEFAULT_REDIS_URL


async def get_shared_redis() -> aioredis.Redis:
    """
    Return a process-wide shared async Redis client.

    The client is created lazily and health-checked with ``ping()``; a lost
    connection is re-established on the next call.

    Raises:
        RedisConnectionError: If Redis cannot be reached.
    """
    if RedisClientState.client is not None:
        try:
            await RedisClientState.client.ping()
        except (RedisConnectionError, AttributeError, OSError):
            logger.warning("Shared Redis connection lost, reconnecting...")
            RedisClientState.client = None
        else:
            return RedisClientState.client

    client = aioredis.from_url(
        get_redis_url(),
        decode_responses=True,
        socket_connect_timeout=2,
    )
    await client.ping()
    RedisClientState.client = client
    logger.info("Shared Redis client connected")
    return client


async def close_shared_redis() -> None:
    """Close the shared Redis client (call during app shutdown)."""
    if RedisClientState.client is not None:
        await RedisClientState.client.aclose()
        RedisClientState.client = None
        logger.info("Shared Redis client closed")
