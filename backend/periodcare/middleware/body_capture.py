"""
PeriodCare Backend - Body and Cookie Capture Middleware
=========================================================

What:  Reads each request body once, keeps the exact bytes, parses JSON
       bodies, parses the Cookie header, and replays the body downstream.
Why:   Webhook signature checks (Svix) must run over the bytes exactly as
       they arrived. Re-serializing parsed JSON changes whitespace and key
       order and breaks the HMAC, so the raw payload is kept verbatim.
How:   Pure ASGI middleware (not BaseHTTPMiddleware) so it controls the
       `receive` channel: it drains `http.request` messages, stores results
       in `scope["state"]` (visible as `request.state`), then hands the app a
       `receive` that yields the same bytes as a single message.

Request state populated:
    request.state.raw_body   bytes, byte-identical to the wire payload
    request.state.json_body  parsed JSON, or None (empty / non-JSON body)
    request.state.cookies    dict of cookie name → value

Client errors (answered here, the app is never called):
    413  body larger than max_body_bytes (Content-Length or actual size)
    400  JSON content type with a body that is not valid JSON
"""

import json
import logging
from typing import Any, Optional

from starlette.datastructures import Headers
from starlette.requests import cookie_parser
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from periodcare.exceptions import InvalidBodyError

logger = logging.getLogger(__name__)


def is_json_content_type(content_type: Optional[str]) -> bool:
    """application/json, or any structured-syntax suffix like application/cloudevents+json."""
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


class BodyCaptureMiddleware:
    def __init__(self, app: ASGIApp, max_body_bytes: int = 102_400) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        state = scope.setdefault("state", {})
        state["cookies"] = cookie_parser(headers.get("cookie", ""))

        try:
            body = await self._read_body(headers, receive)
            if body is None:
                # Client went away mid-upload; nobody is left to answer
                return
            state["raw_body"] = body
            state["json_body"] = self._parse_json(body, headers)
        except InvalidBodyError as exc:
            logger.warning(
                "Rejected %s %s: %s", scope.get("method"), scope.get("path"), exc.message
            )
            response = JSONResponse({"error": exc.message}, status_code=exc.status_code)
            await response(scope, receive, send)
            return

        await self.app(scope, _replay(body, receive), send)

    async def _read_body(self, headers: Headers, receive: Receive) -> Optional[bytes]:
        declared = headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_body_bytes:
            raise InvalidBodyError(message="Request body too large", status_code=413)

        chunks = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return None
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_body_bytes:
                raise InvalidBodyError(message="Request body too large", status_code=413)
            chunks.append(chunk)
            if not message.get("more_body", False):
                return b"".join(chunks)

    @staticmethod
    def _parse_json(body: bytes, headers: Headers) -> Any:
        if not body or not is_json_content_type(headers.get("content-type")):
            return None
        try:
            return json.loads(body)
        except ValueError as exc:
            raise InvalidBodyError(
                message="Malformed JSON body",
                context={"error": str(exc)},
            ) from exc


def _replay(body: bytes, receive: Receive) -> Receive:
    """A receive callable that yields the captured body once, then defers upstream."""
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay
