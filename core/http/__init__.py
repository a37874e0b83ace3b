"""HTTP client utilities and session management."""

from core.http.retry import TRANSIENT_HTTP_ERRORS, retry_async
from core.http.session import cleanup_session, get_session

__all__ = [
    "TRANSIENT_HTTP_ERRORS",
    "cleanup_session",
    "get_session",
    "retry_async",
]
