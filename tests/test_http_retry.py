import asyncio

import pytest
from aiohttp import ClientConnectionError

from core.http.retry import TRANSIENT_HTTP_ERRORS, retry_async


@pytest.mark.asyncio
async def test_retry_async_retries_until_success() -> None:
    attempts = 0

    @retry_async(max_retries=2, retry_delay=0)
    async def flaky_health_read():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise asyncio.TimeoutError()
        return ["workout"]

    assert await flaky_health_read() == ["workout"]
    assert attempts == 3


@pytest.mark.asyncio
async def test_retry_async_raises_after_exhaustion() -> None:
    attempts = 0

    @retry_async(max_retries=1, retry_delay=0)
    async def dropped_connection():
        nonlocal attempts
        attempts += 1
        raise ClientConnectionError("connection reset")

    with pytest.raises(ClientConnectionError):
        await dropped_connection()

    assert attempts == 2


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_non_transient_errors() -> None:
    attempts = 0

    @retry_async(max_retries=3, retry_delay=0)
    async def broken():
        nonlocal attempts
        attempts += 1
        raise ValueError("bad payload")

    with pytest.raises(ValueError):
        await broken()

    assert attempts == 1


def test_transient_errors_cover_timeouts_and_client_errors() -> None:
    assert issubclass(ClientConnectionError, TRANSIENT_HTTP_ERRORS)
    assert issubclass(asyncio.TimeoutError, TRANSIENT_HTTP_ERRORS)
    assert not issubclass(ValueError, TRANSIENT_HTTP_ERRORS)
