"""
PeriodCare Backend - Session Verification (Auth Provider Seam)
================================================================

What:  Abstract contract for turning a request's session credential into an
       identity, plus the Clerk-backed implementation used in production.
Why:   Token verification belongs to the auth provider. Keeping it behind a
       small interface lets the auth gate and the session middleware be
       tested with a fake verifier and no network.
How:   SessionVerifier.authenticate() returns a SessionIdentity or None.
       ClerkSessionVerifier delegates to the Clerk backend SDK, which checks
       the session JWT from the Authorization header or `__session` cookie.
Who:   Called once per request by SessionMiddleware.

Contract:
    - None means "not signed in"; the verifier never raises for a bad token.
    - Provider/transport failures MAY raise; the middleware logs them and
      treats the request as unauthenticated.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

from clerk_backend_api.security import authenticate_request
from clerk_backend_api.security.types import AuthenticateRequestOptions
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"


@dataclass(frozen=True)
class SessionIdentity:
    """The authenticated caller, as attached to `request.state.auth`."""

    user_id: str
    session_id: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


def has_session_credential(request: Request) -> bool:
    """True when the request carries a bearer token or a session cookie."""
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer ") and authorization[7:].strip():
        return True
    return bool(request.cookies.get(SESSION_COOKIE))


class SessionVerifier(ABC):
    """Interface for auth-provider session verification."""

    @abstractmethod
    async def authenticate(self, request: Request) -> Optional[SessionIdentity]:
        """
        Verify the request's session credential.

        Returns:
            SessionIdentity when the credential is valid, None otherwise.
        """
        ...


class ClerkSessionVerifier(SessionVerifier):
    """
    Verifies Clerk session tokens with the official backend SDK.

    authorized_parties restricts which frontend origins may have minted the
    token (the `azp` claim); we pass the CORS allow-list so the two stay in
    step.
    """

    def __init__(self, secret_key: str, authorized_parties: Sequence[str] = ()):
        self._options = AuthenticateRequestOptions(
            secret_key=secret_key,
            authorized_parties=list(authorized_parties),
        )

    async def authenticate(self, request: Request) -> Optional[SessionIdentity]:
        # The SDK is synchronous (it may fetch JWKS over the network)
        state = await run_in_threadpool(authenticate_request, request, self._options)
        if not state.is_signed_in:
            logger.debug("Session rejected by provider: %s", state.reason)
            return None

        claims = dict(state.payload or {})
        user_id = claims.get("sub")
        if not user_id:
            return None
        return SessionIdentity(user_id=user_id, session_id=claims.get("sid"), claims=claims)
