"""
PetProject Backend - Request Logging Middleware
=================================================

What:  One access-log line per HTTP request with status and duration.
How:   Measures from middleware entry to response, picks the log level from
       the status code (5xx ERROR, 4xx WARNING, else INFO) and attaches the
       fields as `extra` for structured handlers.
Who:   Applied to every request except /health.

Logged:     method, path, status, duration, client IP, request ID, account ID
Not logged: request bodies, uploaded media, auth headers
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from petproject.middleware.request_id import request_id_var

logger = logging.getLogger("petproject.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Typical durations:
        GET /health:                 1-5ms
        GET /api/posts:              5-80ms (one store query)
        POST /api/scan:              2000-8000ms (Gemini dominates)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        rid = request_id_var.get("")
        account_id = request.headers.get("X-Account-ID", "-")

        # Health probes run every few seconds
        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] account=%s from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            account_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "account_id": account_id,
            },
        )

        return response
