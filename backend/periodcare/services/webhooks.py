"""
PeriodCare Backend - Auth Provider Webhook Verification
=========================================================

What:  Verifies Svix-signed webhook deliveries from the auth provider
       (user.created, user.updated, user.deleted, ...).
Why:   The webhook endpoint is open (no session), so the signature is the
       only proof the payload came from the provider.
How:   svix.webhooks.Webhook checks the HMAC in `svix-signature` over
       `{svix-id}.{svix-timestamp}.{raw body}` and rejects stale timestamps.
       It must see the raw bytes captured by BodyCaptureMiddleware.
"""

import json
import logging
from typing import Any, Dict, Mapping

from svix.webhooks import Webhook, WebhookVerificationError as SvixVerificationError

from periodcare.exceptions import WebhookNotConfiguredError, WebhookVerificationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


class WebhookVerifier:
    def __init__(self, signing_secret: str):
        self.signing_secret = signing_secret

    @property
    def configured(self) -> bool:
        return bool(self.signing_secret)

    def verify(self, raw_body: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
        """
        Check the signature and return the decoded event.

        The event is decoded from raw_body here; svix's verify() is used only
        as the signature check.

        Raises:
            WebhookNotConfiguredError: no signing secret configured.
            WebhookVerificationError: headers missing, signature mismatch, or
                a signed body that is not a JSON object.
        """
        if not self.configured:
            raise WebhookNotConfiguredError()

        signature_headers = {name: headers.get(name, "") for name in SIGNATURE_HEADERS}
        missing = [name for name, value in signature_headers.items() if not value]
        if missing:
            raise WebhookVerificationError(context={"missing_headers": missing})

        msg_id = signature_headers["svix-id"]
        try:
            Webhook(self.signing_secret).verify(raw_body, signature_headers)
        except SvixVerificationError as e:
            raise WebhookVerificationError(context={"svix_id": msg_id, "error": str(e)}) from e

        try:
            event = json.loads(raw_body)
        except ValueError as e:
            raise WebhookVerificationError(context={"svix_id": msg_id, "error": "body is not JSON"}) from e
        if not isinstance(event, dict):
            raise WebhookVerificationError(context={"svix_id": msg_id, "error": "body is not an object"})

        logger.info("Verified webhook %s (%s)", msg_id, event.get("type"))
        return event
