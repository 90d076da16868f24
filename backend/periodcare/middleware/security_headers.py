"""
PeriodCare Backend - Security Headers Middleware
==================================================

What:  Adds browser-hardening headers (CSP and friends) to every response.
Why:   The React frontend and the auth provider's browser SDK load from this
       origin's pages; the CSP must allow them while blocking everything else.
How:   Headers are computed once at construction and applied with setdefault,
       so a handler that sets its own value wins.

Never set:
    Cross-Origin-Embedder-Policy - require-corp blocks the auth provider's
    client library and third-party API responses.
"""

from typing import Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from periodcare.security import build_content_security_policy

BASE_SECURITY_HEADERS: Dict[str, str] = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, content_security_policy: Optional[str] = None):
        super().__init__(app)
        self.headers = dict(BASE_SECURITY_HEADERS)
        self.headers["Content-Security-Policy"] = (
            content_security_policy or build_content_security_policy()
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response
