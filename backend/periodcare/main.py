"""
PeriodCare Backend - FastAPI Application Factory
==================================================

What:  Assembles the FastAPI application: middleware chain, exception
       handlers, route groups and shutdown hooks.
Why:   One place decides middleware order and which collaborators the app
       talks to; tests build their own app with fakes injected.
How:   create_app(settings, ...) returns a configured instance. It opens no
       connections: the bootstrap sequencer connects the database before
       the listener starts.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware chain (outermost first):                     │
    │    Request ID → Access log → GZip → Security headers     │
    │    → CORS → Body/Cookie capture → Session identity       │
    │    → Error boundary (unmapped exceptions → 500)          │
    │                                                          │
    │  Route groups:                                           │
    │    /health  /favicon.ico           open                  │
    │    /api/auth/*  /api/spotify/*     open                  │
    │    /api/period/*  /api/post/*      auth gate (401)       │
    │    /api/products                   open, SerpAPI proxy   │
    │                                                          │
    │  Exception handlers → {"error": "..."}                   │
    │    Unauthorized→401 │ NotFound→404 │ Body→400/413        │
    │    SearchProvider→500 │ Webhook→400/503 │ other→500      │
    └──────────────────────────────────────────────────────────┘

Shutdown:
    1. Close the search provider HTTP client
    2. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Iterable, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from periodcare import __version__
from periodcare.config import Settings
from periodcare.database import Database
from periodcare.exceptions import (
    InvalidBodyError,
    NotFoundError,
    SearchProviderError,
    UnauthorizedError,
    WebhookNotConfiguredError,
    WebhookVerificationError,
)
from periodcare.middleware.body_capture import BodyCaptureMiddleware
from periodcare.middleware.errors import ErrorBoundaryMiddleware
from periodcare.middleware.logging import RequestLoggingMiddleware
from periodcare.middleware.request_id import RequestIDMiddleware, request_id_var
from periodcare.middleware.security_headers import SecurityHeadersMiddleware
from periodcare.middleware.session import SessionMiddleware
from periodcare.routes import health
from periodcare.routes.composition import RouteGroup, default_route_groups, mount_route_groups
from periodcare.security import build_cors_policy
from periodcare.services.product_search import ProductSearchService
from periodcare.services.session_verifier import ClerkSessionVerifier, SessionVerifier
from periodcare.services.webhooks import WebhookVerifier

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure process-wide logging once, before anything else logs.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Output: stdout (container runtimes capture it).
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request noise from libraries; our access log covers requests
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    yield

    logger.info("PeriodCare backend shutting down...")
    await app.state.http_client.aclose()
    await app.state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the `{"error": ...}` body.

    Security: handlers never put exception context, provider payloads or
    stack traces in the response. Details are logged server-side with the
    request ID. Exceptions with no handler here are answered by
    ErrorBoundaryMiddleware.
    """

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        logger.info("[%s] Unauthorized: %s", request_id_var.get(""), request.url.path)
        return error_response(401, exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, exc.message)

    @app.exception_handler(InvalidBodyError)
    async def handle_invalid_body(request: Request, exc: InvalidBodyError):
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(SearchProviderError)
    async def handle_search_provider(request: Request, exc: SearchProviderError):
        logger.error(
            "[%s] Product search failed: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return error_response(500, exc.message)

    @app.exception_handler(WebhookVerificationError)
    async def handle_webhook_verification(request: Request, exc: WebhookVerificationError):
        logger.warning(
            "[%s] Webhook rejected: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return error_response(400, exc.message)

    @app.exception_handler(WebhookNotConfiguredError)
    async def handle_webhook_not_configured(request: Request, exc: WebhookNotConfiguredError):
        logger.error("[%s] %s (set CLERK_WEBHOOK_SECRET)", request_id_var.get(""), exc.message)
        return error_response(503, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Settings,
    *,
    database: Optional[Database] = None,
    session_verifier: Optional[SessionVerifier] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    route_groups: Optional[Iterable[RouteGroup]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:          The validated configuration snapshot.
        database:          Database handle; built from settings when omitted.
        session_verifier:  Auth-provider seam; Clerk when omitted.
        http_client:       Client for the search provider; a fresh
                           httpx.AsyncClient when omitted.
        route_groups:      Mounted groups; the standard table when omitted.
    """
    app = FastAPI(
        title="PeriodCare API",
        description="Backend for period tracking, community posts and product search.",
        version=__version__,
        lifespan=lifespan,
    )

    cors_policy = build_cors_policy(settings)
    # Database first: a bad DATABASE_URL raises before any client is opened
    database = database or Database(settings)
    http_client = http_client or httpx.AsyncClient(headers={"Accept": "application/json"})

    app.state.settings = settings
    app.state.cors_policy = cors_policy
    app.state.database = database
    app.state.http_client = http_client
    app.state.product_search = ProductSearchService(http_client, settings)
    app.state.webhook_verifier = WebhookVerifier(settings.clerk_webhook_secret)

    if session_verifier is None:
        session_verifier = ClerkSessionVerifier(
            secret_key=settings.clerk_secret_key,
            authorized_parties=cors_policy.origins,
        )

    # ── Register Middleware ───────────────────────────────────────────────
    # Starlette runs middleware in REVERSE order of addition (last added =
    # outermost). The error boundary is innermost so a 500 passes back through
    # CORS, security headers and request ID; session identity sits directly
    # in front of it and the gate. CORS wraps body capture so 400/413 answers
    # carry CORS headers.
    app.add_middleware(ErrorBoundaryMiddleware)
    app.add_middleware(SessionMiddleware, verifier=session_verifier)
    app.add_middleware(BodyCaptureMiddleware, max_body_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_policy.origins),
        allow_credentials=cors_policy.credentials,
        allow_methods=list(cors_policy.methods),
        allow_headers=list(cors_policy.headers),
        expose_headers=list(cors_policy.expose_headers),
    )
    if settings.security_headers_enabled:
        app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    mount_route_groups(app, default_route_groups() if route_groups is None else route_groups)

    return app
