"""
PeriodCare Backend - Access Log Middleware
============================================

What:  One access-log line per request: method, path, status, duration,
       whether the caller was signed in, request ID.
Why:   The auth gate and the search proxy fail per request; the access log
       is where a 401 storm or a run of provider 500s becomes visible.
       Cross-origin calls from origins outside the CORS allow-list are
       flagged, since the browser silently drops their responses and the
       frontend only sees a network error.
How:   Reads the identity SessionMiddleware left in `request.state` after
       the downstream call returns (state is shared through the ASGI scope).

Logged vs never logged (health data):
    ✅ method, path, status, duration, user id, request ID, rejected origin
    ❌ bodies, query strings, cookies, Authorization and Svix-* headers
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from periodcare.middleware.request_id import request_id_var

logger = logging.getLogger("periodcare.access")

QUIET_PATHS = frozenset({"/health", "/favicon.ico"})


def status_log_level(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        origin = request.headers.get("origin")
        if origin and not request.app.state.cors_policy.allows(origin):
            logger.warning(
                "[%s] Cross-origin %s %s from disallowed origin %s",
                request_id_var.get(""),
                request.method,
                request.url.path,
                origin,
            )

        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        identity = getattr(request.state, "auth", None)
        user = identity.user_id if identity is not None else "-"
        logger.log(
            status_log_level(response.status_code),
            "%s %s %d %.1fms user=%s [%s]",
            request.method,
            path,
            response.status_code,
            duration_ms,
            user,
            request_id_var.get(""),
        )
        return response
