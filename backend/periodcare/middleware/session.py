"""
PeriodCare Backend - Session Identity Middleware
==================================================

What:  Resolves the caller's session identity for every request and stores it
       on `request.state.auth` (a SessionIdentity, or None).
Why:   The auth gate on protected route groups only reads this value, so the
       provider's verification must run earlier in the chain. Open groups
       (user auth, products, spotify) can still see who is calling.
How:   Skips the provider entirely when no credential is present; otherwise
       asks the injected SessionVerifier.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from periodcare.middleware.request_id import request_id_var
from periodcare.services.session_verifier import SessionVerifier, has_session_credential

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, verifier: SessionVerifier):
        super().__init__(app)
        self.verifier = verifier

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        identity = None
        if has_session_credential(request):
            try:
                identity = await self.verifier.authenticate(request)
            except Exception as e:
                # Provider outage: the request continues unauthenticated and
                # gated routes answer 401.
                logger.warning(
                    "[%s] Session verification failed: %s", request_id_var.get(""), e
                )
        request.state.auth = identity
        return await call_next(request)
