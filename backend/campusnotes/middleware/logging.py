"""
CampusNotes Backend: Request Logging Middleware
=================================================

What:  One access log line per request: method, path, status, duration and
       the caller ("faculty:<id>", "admin:<id>", "other:<id>" or "anonymous").
Who:   Every request except /health (probes run every few seconds).

The caller comes from `request.state.principal`, which `get_principal` sets
once the bearer token has been resolved. Requests rejected before that point
(missing or bad token) and public routes log as anonymous.

Level by status:
    5xx → ERROR, 4xx → WARNING, otherwise INFO.

Not logged: request bodies, Authorization headers, presigned URLs.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("campusnotes.access")

SKIPPED_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def _caller(request: Request) -> str:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        return "anonymous"
    return f"{principal.role.value}:{principal.user_id}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SKIPPED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        caller = _caller(request)
        logger.log(
            _level_for(response.status_code),
            "%s %s → %d (%.1fms) by %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            caller,
            extra={
                "caller": caller,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        return response
