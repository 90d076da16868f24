"""
PeriodCare Backend - Route Dependencies (Auth Gate + Request Context)
=======================================================================

What:  FastAPI dependencies giving handlers the request context built by the
       middleware chain, and the auth gate applied to protected groups.
Why:   Handlers ask for what they need (identity, raw body, settings)
       instead of reaching into globals or os.environ.
How:   Everything is read from `request.state` (per request) or
       `request.app.state` (immutable, shared).

Auth Gate:
    require_auth is attached at include time:
        app.include_router(group, dependencies=[Depends(require_auth)])
    FastAPI resolves router dependencies before the endpoint runs, so an
    unauthenticated request never reaches the handler.
"""

from typing import Any, Dict, Optional

from fastapi import Request

from periodcare.config import Settings
from periodcare.exceptions import UnauthorizedError
from periodcare.services.product_search import ProductSearchService
from periodcare.services.session_verifier import SessionIdentity
from periodcare.services.webhooks import WebhookVerifier


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity(request: Request) -> Optional[SessionIdentity]:
    """Identity resolved by SessionMiddleware; None when signed out."""
    return getattr(request.state, "auth", None)


async def require_auth(request: Request) -> SessionIdentity:
    """
    Auth gate: short-circuits with 401 unless a session identity is attached.

    Raises:
        UnauthorizedError → 401 {"error": "Unauthorized"}
    """
    identity = get_identity(request)
    if identity is None:
        raise UnauthorizedError(context={"path": request.url.path})
    return identity


def get_raw_body(request: Request) -> bytes:
    """Exact wire bytes captured by BodyCaptureMiddleware."""
    return getattr(request.state, "raw_body", b"")


def get_json_body(request: Request) -> Any:
    return getattr(request.state, "json_body", None)


def get_cookies(request: Request) -> Dict[str, str]:
    return getattr(request.state, "cookies", {})


def get_product_search(request: Request) -> ProductSearchService:
    return request.app.state.product_search


def get_webhook_verifier(request: Request) -> WebhookVerifier:
    return request.app.state.webhook_verifier
