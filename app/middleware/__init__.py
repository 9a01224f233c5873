"""
Middleware modules for the inspection API.

- Request ID tracking, shared with logging and problem-detail errors
"""

from .request_id import RequestIdMiddleware, RequestIdLogFilter, request_id_ctx

__all__ = [
    "RequestIdMiddleware",
    "RequestIdLogFilter",
    "request_id_ctx",
]
