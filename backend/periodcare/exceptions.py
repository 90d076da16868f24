"""
PeriodCare Backend - Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for startup failures and request errors.
Why:   Each failure class maps to exactly one outcome: a fatal startup result
       or an HTTP status with a minimal JSON body.
How:   Every exception carries a message and an optional context dict.
       Handlers registered in main.py turn request-time exceptions into
       `{"error": ...}` responses; the bootstrap sequencer turns startup
       exceptions into a Fatal result.
Who:   Raised by config, database, services, middleware and route dependencies.

Exception Hierarchy:
    PeriodCareError (base)
    ├── ConfigurationError          → Fatal (process exits before listening)
    ├── DatabaseConnectionError     → Fatal (process exits before listening)
    ├── UnauthorizedError           → 401 Unauthorized
    ├── NotFoundError               → 404 Not Found
    ├── InvalidBodyError            → 400 / 413
    ├── SearchProviderError         → 500 Internal Server Error (generic body)
    ├── WebhookVerificationError    → 400 Bad Request
    └── WebhookNotConfiguredError   → 503 Service Unavailable

Security Note:
    `context` is for server-side logs only. Response bodies never include it,
    so provider payloads, connection strings and token fragments stay private.
"""

from typing import Any, Dict, List, Optional


class PeriodCareError(Exception):
    """
    Base exception for all PeriodCare application errors.

    Attributes:
        message:  Description safe to log; handlers decide what reaches clients.
        context:  Extra debug info (logged, never returned).
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


# ══════════════════════════════════════════════════════════════════════════
# Startup failures (never reach an HTTP client)
# ══════════════════════════════════════════════════════════════════════════


class ConfigurationError(PeriodCareError):
    """
    Raised when required configuration is missing or invalid at startup.

    The bootstrap sequencer converts this into a Fatal result; the entry
    point exits non-zero before any socket is bound.
    """

    def __init__(
        self,
        missing: Optional[List[str]] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.missing = list(missing or [])
        if message is None:
            message = "Missing required environment variables: " + ", ".join(self.missing)
        ctx = context or {}
        if self.missing:
            ctx["missing"] = self.missing
        super().__init__(message=message, context=ctx)


class DatabaseConnectionError(PeriodCareError):
    """Raised when the database cannot be reached during startup."""

    def __init__(
        self,
        message: str = "Database connection failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


# ══════════════════════════════════════════════════════════════════════════
# Request-time failures
# ══════════════════════════════════════════════════════════════════════════


class UnauthorizedError(PeriodCareError):
    """
    Raised by the auth gate when no valid session identity is attached.

    HTTP: 401. The route handler is never invoked.
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PeriodCareError):
    """Raised for unmatched paths inside a gated route group."""

    def __init__(
        self,
        message: str = "Not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidBodyError(PeriodCareError):
    """
    Raised when a request body cannot be accepted.

    HTTP: 400 for malformed JSON under a JSON content type,
          413 when the body exceeds the configured size limit.
    """

    def __init__(
        self,
        message: str = "Malformed JSON body",
        status_code: int = 400,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code


class SearchProviderError(PeriodCareError):
    """
    Raised when the product-search provider call fails.

    Covers network errors, timeouts, non-2xx answers, provider-reported
    errors and malformed payloads. The client only ever sees the generic
    message; the cause is in `context`.
    """

    def __init__(
        self,
        message: str = "Failed to fetch products",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class WebhookVerificationError(PeriodCareError):
    """Raised when a webhook signature does not match the raw body bytes."""

    def __init__(
        self,
        message: str = "Invalid webhook signature",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class WebhookNotConfiguredError(PeriodCareError):
    """Raised when a webhook arrives but no signing secret is configured."""

    def __init__(
        self,
        message: str = "Webhook endpoint is not configured",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
