"""
PeriodCare Backend - User Auth Routes (/api/auth)
===================================================

Open group: sign-in and sign-up happen in the auth provider's frontend
widgets, so this group must be reachable without a session.

    GET  /api/auth/session   who the caller is, if anyone
    POST /api/auth/webhook   provider user-lifecycle events (Svix-signed)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from periodcare.routes.deps import get_identity, get_raw_body, get_webhook_verifier
from periodcare.schemas.api import ErrorResponse, SessionResponse, WebhookAck
from periodcare.services.session_verifier import SessionIdentity
from periodcare.services.webhooks import WebhookVerifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.get("/session", response_model=SessionResponse)
async def current_session(
    identity: Optional[SessionIdentity] = Depends(get_identity),
) -> SessionResponse:
    if identity is None:
        return SessionResponse(signed_in=False)
    return SessionResponse(signed_in=True, user_id=identity.user_id)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={
        400: {"description": "Signature check failed", "model": ErrorResponse},
        503: {"description": "Signing secret not configured", "model": ErrorResponse},
    },
)
async def provider_webhook(
    request: Request,
    raw_body: bytes = Depends(get_raw_body),
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
) -> WebhookAck:
    # Verified over the captured wire bytes, never over re-encoded JSON
    event = verifier.verify(raw_body, request.headers)
    event_type = event.get("type") if isinstance(event, dict) else None
    logger.info("Auth provider event received: %s", event_type)
    return WebhookAck(type=event_type)
