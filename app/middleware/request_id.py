"""
Request ID middleware.

Every inspection request carries an ID (taken from ``X-Request-ID`` or
generated) that is echoed back on the response, stamped on log records and
reused as the ``trace_id`` of problem-detail error bodies.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Awaitable, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64
NO_REQUEST = "unknown"

_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]+$")

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def generate_id() -> str:
    """Twelve hex characters, enough to grep a day of logs."""
    return uuid.uuid4().hex[:12]


def accept_request_id(raw: Optional[str]) -> str:
    """Use the caller's ID when it is short and log-safe, else mint a new one."""
    candidate = (raw or "").strip()
    if candidate and len(candidate) <= MAX_REQUEST_ID_LENGTH and _SAFE_ID.match(candidate):
        return candidate
    return generate_id()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Binds the request ID to the context for the lifetime of the request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_ctx.set(request_id)
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_request_id() -> str:
    return request_id_ctx.get() or NO_REQUEST


class RequestIdLogFilter(logging.Filter):
    """Injects ``request_id`` into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True
