"""
Correlation ID tracking.

Each request gets a correlation id (taken from the X-Correlation-ID header
or generated) stored in a ContextVar, so log lines emitted anywhere while
handling the request can be tied together.
"""

import contextvars
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

CORRELATION_HEADER = "X-Correlation-ID"

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "git_content_correlation_id", default=None
)


def get_correlation_id() -> Optional[str]:
    """Return the correlation id of the current context, if any."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Assigns a correlation id to every request and echoes it back."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = _correlation_id.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            _correlation_id.reset(token)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
