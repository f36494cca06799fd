"""
NoteMark Backend - Request Logging Middleware
===============================================

What:  One access log line per HTTP request, with status and duration.
How:   Measures time around call_next and logs on the "notemark.access"
       logger, at a level chosen from the status code.
When:  Runs inside RequestIDMiddleware, so the request ID is available.

What we log vs what we don't:
    Logged:  method, path, status, duration, client IP, request ID
    Skipped: request bodies (note content), headers, /health probes
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("notemark.access")

QUIET_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request as: METHOD PATH STATUS DURATIONms [request_id] from IP

    Typical durations:
        - GET /api/notes/{id}: a few ms (single primary-key lookup)
        - POST /api/grammar/live: first call is slow while LanguageTool starts
        - POST /api/grammar/check: seconds (Gemini call dominates)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        rid = request_id_var.get("")

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
