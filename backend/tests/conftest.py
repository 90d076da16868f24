"""
PeriodCare Backend - Test Configuration (conftest.py)
=======================================================

What:  Shared fixtures: a settings snapshot, fake collaborators and an app
       factory wired to them.
Why:   No test should reach Clerk, SerpAPI or PostgreSQL.
How:   - FakeSessionVerifier maps known tokens to identities
       - FakeSearchProvider answers through httpx.MockTransport
       - database_url points at in-memory SQLite (aiosqlite)

Fixture Hierarchy (all function-scoped):
    ├── test_settings:   Settings snapshot, .env ignored
    ├── fake_verifier:   auth provider stand-in
    ├── fake_provider:   search provider stand-in (+ its httpx client)
    ├── build_app:       create_app() with the fakes injected
    └── test_client:     HTTPX AsyncClient over ASGITransport
"""

import base64
from typing import Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from periodcare.config import Settings
from periodcare.main import create_app
from periodcare.services.session_verifier import SessionIdentity, SessionVerifier

VALID_TOKEN = "valid-session-token"
TEST_IDENTITY = SessionIdentity(
    user_id="user_123",
    session_id="sess_456",
    claims={"sub": "user_123", "sid": "sess_456"},
)
FRONTEND_URL = "https://app.periodcare.test"
WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"periodcare-webhook-test-secret!!").decode()


class FakeSessionVerifier(SessionVerifier):
    """Accepts VALID_TOKEN from the Authorization header or `__session` cookie."""

    def __init__(self, sessions: Optional[Dict[str, SessionIdentity]] = None):
        self.sessions = sessions if sessions is not None else {VALID_TOKEN: TEST_IDENTITY}
        self.error: Optional[Exception] = None
        self.calls = 0

    async def authenticate(self, request):
        self.calls += 1
        if self.error is not None:
            raise self.error
        authorization = request.headers.get("authorization", "")
        if authorization.lower().startswith("bearer "):
            token = authorization[7:].strip()
        else:
            token = request.cookies.get("__session")
        return self.sessions.get(token)


class FakeSearchProvider:
    """SerpAPI stand-in: records requests and answers with a canned payload."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.payload = {"shopping_results": []}
        self.status_code = 200
        self.error: Optional[Exception] = None
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last_params(self) -> Dict[str, str]:
        return dict(self.requests[-1].url.params)


def auth_headers(token: str = VALID_TOKEN) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        clerk_secret_key="sk_test_not_real",
        clerk_publishable_key="pk_test_not_real",
        clerk_webhook_secret=WEBHOOK_SECRET,
        frontend_url=FRONTEND_URL,
        serpapi_key="serpapi-test-key",
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        log_level="WARNING",
    )


@pytest.fixture
def fake_verifier() -> FakeSessionVerifier:
    return FakeSessionVerifier()


@pytest_asyncio.fixture
async def fake_provider():
    provider = FakeSearchProvider()
    yield provider
    await provider.client.aclose()


@pytest.fixture
def build_app(test_settings, fake_verifier, fake_provider):
    """
    Returns a factory so a test can swap settings or route groups:
        app = build_app(route_groups=[RouteGroup("/x", router)])
    """

    def _build(settings: Optional[Settings] = None, **overrides):
        overrides.setdefault("session_verifier", fake_verifier)
        overrides.setdefault("http_client", fake_provider.client)
        return create_app(settings or test_settings, **overrides)

    return _build


@pytest_asyncio.fixture
async def client_for():
    """Opens an AsyncClient for any app and closes it after the test."""
    clients: List[AsyncClient] = []

    def _client(app) -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _client
    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def test_client(build_app, client_for):
    """
    Provides an async HTTP client for the fully wired app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    return client_for(build_app())
