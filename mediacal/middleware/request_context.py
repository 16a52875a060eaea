"""
RequestContext Middleware - Adds request tracking to all requests.

Every request gets:
- request_id: Unique ID for request tracing, echoed as X-Request-ID
- ip_address: Direct client address

Both are stored in request.state and bound into structlog's context
variables, so every log line emitted while handling the request carries
the request_id without it being passed around.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from mediacal.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Add request context to all incoming requests."""

    async def dispatch(self, request: Request, call_next):
        # Honour an upstream ID so traces line up across the proxy hop
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.ip_address = request.client.host if request.client else None

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
            ip_address=request.state.ip_address,
        )

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers["X-Request-ID"] = request_id
        return response
