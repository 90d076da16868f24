"""
PeriodCare Backend - Health, Request ID and Error Shape Tests
===============================================================
"""

import logging

import pytest
from fastapi import APIRouter
from httpx import ASGITransport, AsyncClient

from conftest import FRONTEND_URL, auth_headers
from periodcare.middleware.request_id import RequestIDMiddleware
from periodcare.routes.composition import RouteGroup
from periodcare.schemas.api import HealthResponse


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health_reports_configuration(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "message": "Backend running successfully!",
            "clerkConfigured": True,
            "clerkPublishableConfigured": True,
            "searchConfigured": True,
            "nodeEnv": "test",
        }

    @pytest.mark.asyncio
    async def test_health_needs_no_session(self, test_client, fake_verifier):
        response = await test_client.get("/health")
        assert response.status_code == 200
        assert fake_verifier.calls == 0

    @pytest.mark.asyncio
    async def test_search_unconfigured(self, build_app, client_for, test_settings):
        settings = test_settings.model_copy(update={"serpapi_key": ""})
        response = await client_for(build_app(settings=settings)).get("/health")
        assert response.json()["searchConfigured"] is False

    @pytest.mark.asyncio
    async def test_favicon_is_empty_204(self, test_client):
        response = await test_client.get("/favicon.ico")
        assert response.status_code == 204
        assert response.content == b""

    def test_schema_aliases(self):
        dumped = HealthResponse(
            clerk_configured=False,
            clerk_publishable_configured=False,
            search_configured=False,
            node_env="dev",
        ).model_dump(by_alias=True)
        assert set(dumped) == {
            "message",
            "clerkConfigured",
            "clerkPublishableConfigured",
            "searchConfigured",
            "nodeEnv",
        }


class TestRequestId:
    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/health")
        assert len(response.headers["x-request-id"]) == 8

    @pytest.mark.asyncio
    async def test_inbound_id_is_reused(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "trace-abc"})
        assert response.headers["x-request-id"] == "trace-abc"

    @pytest.mark.asyncio
    async def test_error_responses_carry_request_id(self, test_client):
        response = await test_client.get("/api/period/")
        assert response.status_code == 401
        assert "x-request-id" in response.headers


class TestUnknownRoutes:
    @pytest.mark.asyncio
    async def test_unknown_open_path_is_404(self, test_client):
        response = await test_client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    @pytest.mark.asyncio
    async def test_wrong_method_is_405(self, test_client):
        response = await test_client.post("/health")
        assert response.status_code == 405
        assert "error" in response.json()


class TestUnexpectedErrors:
    @pytest.fixture
    def failing_client(self, build_app, client_for):
        router = APIRouter()

        @router.get("/boom")
        async def boom():
            raise RuntimeError("database exploded")

        return client_for(build_app(route_groups=[RouteGroup("/api/debug", router)]))

    @pytest.mark.asyncio
    async def test_unhandled_error_is_generic_500(self, failing_client):
        response = await failing_client.get("/api/debug/boom")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "exploded" not in response.text

    @pytest.mark.asyncio
    async def test_500_passes_through_middleware_chain(self, failing_client):
        response = await failing_client.get(
            "/api/debug/boom", headers={"Origin": FRONTEND_URL, "X-Request-ID": "trace-500"}
        )
        assert response.status_code == 500
        assert response.headers["x-request-id"] == "trace-500"
        assert response.headers["access-control-allow-origin"] == FRONTEND_URL
        assert response.headers["x-content-type-options"] == "nosniff"

    @pytest.mark.asyncio
    async def test_middleware_failure_still_answers_with_request_id(self):
        async def broken_app(scope, receive, send):
            raise RuntimeError("middleware bug")

        app = RequestIDMiddleware(broken_app)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/anything", headers={"X-Request-ID": "trace-mw"})
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert response.headers["x-request-id"] == "trace-mw"


class TestAccessLog:
    @pytest.mark.asyncio
    async def test_disallowed_origin_is_logged(self, test_client, caplog):
        with caplog.at_level(logging.WARNING, logger="periodcare.access"):
            await test_client.get("/api/spotify/", headers={"Origin": "https://evil.example"})
        assert any("disallowed origin https://evil.example" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_allowed_origin_not_flagged(self, test_client, caplog):
        with caplog.at_level(logging.WARNING, logger="periodcare.access"):
            await test_client.get("/api/spotify/", headers={"Origin": FRONTEND_URL})
        assert not any("disallowed origin" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_signed_in_user_is_logged(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="periodcare.access"):
            await test_client.get("/api/period/", headers=auth_headers())
        assert any("user=user_123" in r.getMessage() for r in caplog.records)
