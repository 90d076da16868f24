"""
PeriodCare Backend - Health Check Route
=========================================

What:  GET /health for load balancers and deploy checks, plus a silent
       GET /favicon.ico so browsers hitting the API root do not log 404s.
How:   Reports configuration state from the immutable settings snapshot.
       It does not check the database or the search provider: the process
       only listens after the database connected, and provider health is
       visible per request in the access log.
"""

from fastapi import APIRouter, Depends, Response

from periodcare.config import Settings
from periodcare.routes.deps import get_settings
from periodcare.schemas.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(
        clerk_configured=settings.clerk_configured,
        clerk_publishable_configured=settings.clerk_publishable_configured,
        search_configured=settings.search_configured,
        node_env=settings.environment,
    )


@router.get("/favicon.ico", status_code=204, include_in_schema=False)
async def favicon() -> Response:
    return Response(status_code=204)
