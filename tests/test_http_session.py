import pytest

from core.constants import HTTP_CONNECTION_LIMIT, HTTP_USER_AGENT
from core.http import session as session_module
from core.http.session import SessionState, cleanup_session, get_session


@pytest.mark.asyncio
async def test_session_reuse_and_cleanup() -> None:
    session_a = await get_session()
    session_b = await get_session()

    assert session_a is session_b

    await cleanup_session()
    assert session_a.closed
    assert SessionState.session is None

    session_c = await get_session()
    assert session_c is not session_a

    await cleanup_session()


@pytest.mark.asyncio
async def test_session_sends_json_accept_and_user_agent() -> None:
    session = await get_session()
    try:
        assert session.headers["User-Agent"] == HTTP_USER_AGENT
        assert session.headers["Accept"] == "application/json"
        assert session.connector.limit == HTTP_CONNECTION_LIMIT
    finally:
        await cleanup_session()


@pytest.mark.asyncio
async def test_session_inherited_from_parent_process_is_replaced(monkeypatch) -> None:
    inherited = await get_session()
    monkeypatch.setattr(session_module.os, "getpid", lambda: -1)

    fresh = await get_session()

    assert fresh is not inherited
    assert SessionState.session_owner_pid == -1
    await fresh.close()
    await inherited.close()
    SessionState.session = None
    SessionState.session_owner_pid = None
