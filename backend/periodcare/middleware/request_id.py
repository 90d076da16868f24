"""
PeriodCare Backend - Request ID Middleware
============================================

What:  Tags every request with a short correlation ID and echoes it back in
       X-Request-ID on every response, including ones sent directly by a
       middleware (400/413 from body capture, 500 from the error boundary).
Why:   Error bodies stay minimal (`{"error": ...}`), so the header is how a
       client report is matched to server logs.
How:   Pure ASGI: the ID goes into a ContextVar and `scope["state"]` before
       the rest of the stack runs, and a wrapped `send` adds the header to
       the `http.response.start` message.

Outermost failure answer:
    If something below raises before a response has started (a middleware
    bug, since handler errors are converted by ErrorBoundaryMiddleware),
    this layer logs it and answers 500 {"error": "Internal server error"}
    with the ID, instead of Starlette's plain-text page without one.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"
INTERNAL_ERROR = "Internal server error"


class RequestIDMiddleware:
    """Assigns a request ID, preferring one supplied by the frontend."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        rid = Headers(scope=scope).get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        scope.setdefault("state", {})["request_id"] = rid
        response_started = False

        async def send_with_id(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = rid
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        except Exception:
            if response_started:
                raise
            logger.error(
                "[%s] Unhandled error in middleware chain on %s %s",
                rid,
                scope.get("method"),
                scope.get("path"),
                exc_info=True,
            )
            response = JSONResponse(
                {"error": INTERNAL_ERROR},
                status_code=500,
                headers={REQUEST_ID_HEADER: rid},
            )
            await response(scope, receive, send)
