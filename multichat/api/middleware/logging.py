"""Logging middleware."""

import time
import uuid
from typing import Any, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from structlog import get_logger

from ...services.chat_adapters.base import Platform

logger = get_logger()

# Polled by uptime checks and dashboards; logged at debug only
QUIET_PATHS = {"/health", "/status", "/metrics"}


def request_context(path: str) -> Dict[str, Any]:
    """Log fields derived from the request path.

    OAuth routes are tagged with their platform. Query strings are never
    logged because the callbacks carry authorization codes.
    """
    context: Dict[str, Any] = {"path": path}
    first_segment = path.strip("/").split("/", 1)[0]
    if first_segment in {platform.value for platform in Platform}:
        context["platform"] = first_segment
        context["oauth_flow"] = True
    return context


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging."""

    async def dispatch(self, request: Request, call_next):
        """Log requests and responses."""
        request_id = str(uuid.uuid4())
        start_time = time.time()
        path = request.url.path

        response = await call_next(request)

        log = logger.debug if path in QUIET_PATHS else logger.info
        log(
            "request_completed",
            request_id=request_id,
            method=request.method,
            status_code=response.status_code,
            duration_seconds=round(time.time() - start_time, 3),
            **request_context(path),
        )

        response.headers["X-Request-ID"] = request_id
        return response
