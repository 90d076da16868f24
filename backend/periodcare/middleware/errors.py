"""
PeriodCare Backend - Error Boundary Middleware
================================================

What:  Turns any exception escaping a route handler into
       500 {"error": "Internal server error"}.
Why:   Starlette sends its catch-all 500 from ServerErrorMiddleware, outside
       every user middleware, so that response would carry no X-Request-ID,
       no CORS headers and no security headers; the browser could not even
       read it. Converting the error innermost lets the 500 travel back
       through the whole chain like any other response.
How:   Pure ASGI, mounted innermost (directly around the router). Mapped
       domain errors (401/404/...) are already answered by the exception
       handlers below this layer; only unmapped exceptions arrive here.

The process keeps serving; the traceback is logged with the request ID.
"""

import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from periodcare.middleware.request_id import INTERNAL_ERROR, request_id_var

logger = logging.getLogger(__name__)


class ErrorBoundaryMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            # Half-sent response: nothing sane can follow, let the server close it
            if response_started:
                raise
            logger.error(
                "[%s] Unexpected error on %s %s: %s",
                request_id_var.get(""),
                scope.get("method"),
                scope.get("path"),
                exc,
                exc_info=True,
            )
            response = JSONResponse({"error": INTERNAL_ERROR}, status_code=500)
            await response(scope, receive, send)
