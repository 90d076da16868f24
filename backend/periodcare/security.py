"""
PeriodCare Backend - CORS and Content-Security Policy
=======================================================

What:  Builds the CORS Policy Set and the Content-Security-Policy header value.
Why:   Both are decided once from configuration and then only read, so they
       live as immutable values instead of being recomputed per request.
How:   build_cors_policy() merges configured + fixed origins, dropping unset
       entries; build_content_security_policy() merges default directives
       with the overrides the browser frontend needs.

Allowed origins (order preserved, duplicates removed):
    1. FRONTEND_URL (when set)
    2. Local dev servers (DEV_ORIGINS)
    3. The auth provider's domain (CLERK_DOMAIN)
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from periodcare.config import Settings

ALLOWED_METHODS: Tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")

# Svix-* are sent by the auth provider's webhook deliveries
ALLOWED_HEADERS: Tuple[str, ...] = (
    "Content-Type",
    "Authorization",
    "Svix-Id",
    "Svix-Timestamp",
    "Svix-Signature",
)

EXPOSED_HEADERS: Tuple[str, ...] = ("X-Request-ID",)


@dataclass(frozen=True)
class CorsPolicy:
    """
    Immutable CORS rule set consumed by Starlette's CORSMiddleware.

    Attributes:
        origins:      Exact-match allow-list; anything else gets no
                      Access-Control-Allow-Origin echo.
        methods:      Fixed set of allowed methods.
        headers:      Fixed set of allowed request headers.
        credentials:  Cookies/Authorization may be sent cross-origin.
    """

    origins: Tuple[str, ...]
    methods: Tuple[str, ...] = ALLOWED_METHODS
    headers: Tuple[str, ...] = ALLOWED_HEADERS
    expose_headers: Tuple[str, ...] = EXPOSED_HEADERS
    credentials: bool = True

    def allows(self, origin: Optional[str]) -> bool:
        return bool(origin) and origin in self.origins


def _unique_present(values: Iterable[Optional[str]]) -> Tuple[str, ...]:
    seen: List[str] = []
    for value in values:
        value = (value or "").strip().rstrip("/")
        if value and value not in seen:
            seen.append(value)
    return tuple(seen)


def build_cors_policy(settings: Settings) -> CorsPolicy:
    """Combine configured and fixed origins; unset entries are dropped."""
    return CorsPolicy(
        origins=_unique_present(
            [settings.frontend_url, *settings.dev_origins_list, settings.clerk_domain]
        )
    )


# ══════════════════════════════════════════════════════════════════════════
# Content-Security-Policy
# ══════════════════════════════════════════════════════════════════════════

DEFAULT_CSP_DIRECTIVES: Dict[str, Tuple[str, ...]] = {
    "default-src": ("'self'",),
    "base-uri": ("'self'",),
    "font-src": ("'self'", "https:", "data:"),
    "form-action": ("'self'",),
    "frame-ancestors": ("'self'",),
    "img-src": ("'self'", "data:"),
    "object-src": ("'none'",),
    "script-src": ("'self'",),
    "script-src-attr": ("'none'",),
    "style-src": ("'self'", "https:", "'unsafe-inline'"),
    "upgrade-insecure-requests": (),
}

# The auth provider's browser SDK needs inline/eval scripts and arbitrary
# API/WebSocket endpoints.
APP_CSP_DIRECTIVES: Dict[str, Tuple[str, ...]] = {
    "default-src": ("'self'",),
    "img-src": ("'self'", "data:", "https:"),
    "script-src": ("'self'", "'unsafe-inline'", "'unsafe-eval'"),
    "style-src": ("'self'", "'unsafe-inline'", "https:"),
    "connect-src": ("'self'", "*"),
    "font-src": ("'self'", "https:", "data:"),
    "object-src": ("'none'",),
}


def build_content_security_policy(
    overrides: Optional[Dict[str, Tuple[str, ...]]] = None,
) -> str:
    """
    Serialize the merged directive map into a single header value.

    Overrides replace a default directive wholesale. A directive with no
    sources (upgrade-insecure-requests) is emitted bare.
    """
    directives = dict(DEFAULT_CSP_DIRECTIVES)
    directives.update(APP_CSP_DIRECTIVES if overrides is None else overrides)
    parts = []
    for name, sources in directives.items():
        parts.append(" ".join((name, *sources)) if sources else name)
    return "; ".join(parts)
