"""
PeriodCare Backend - Router Composition
=========================================

What:  Mounts every route group under its fixed prefix and applies the auth
       gate where the group requires it.
Why:   Which groups are open and which are gated is a security decision; it
       is kept in one table instead of being scattered across feature code.

Route groups:
    prefix          gated   contents
    /api/auth       no      session lookup, provider webhook (sign-in must be open)
    /api/period     yes     period tracking
    /api/post       yes     posts
    /api/spotify    no      Spotify integration
    /api            no      product search proxy (/api/products)

Prefixes are disjoint, so mounting order does not matter. Within a gated
group the gate runs before routing to the feature's endpoints, including
the catch-all that turns unknown sub-paths into 404: an unauthenticated
caller always gets 401, whatever path it guesses.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from fastapi import APIRouter, Depends, FastAPI

from periodcare.exceptions import NotFoundError
from periodcare.routes import features, products, users
from periodcare.routes.deps import require_auth

logger = logging.getLogger(__name__)

FALLBACK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@dataclass(frozen=True)
class RouteGroup:
    prefix: str
    router: APIRouter
    gated: bool = False


def default_route_groups() -> Sequence[RouteGroup]:
    return (
        RouteGroup("/api/auth", users.router),
        RouteGroup("/api/period", features.period_router, gated=True),
        RouteGroup("/api/post", features.post_router, gated=True),
        RouteGroup("/api/spotify", features.spotify_router),
        RouteGroup("/api", products.router),
    )


async def _unknown_gated_path(rest: str) -> None:
    raise NotFoundError(context={"path": rest})


def mount_route_groups(app: FastAPI, groups: Iterable[RouteGroup]) -> None:
    """Include each group's router under its prefix, gated or open."""
    for group in groups:
        if not group.gated:
            app.include_router(group.router, prefix=group.prefix)
            logger.debug("Mounted %s (open)", group.prefix)
            continue

        wrapper = APIRouter(prefix=group.prefix)
        wrapper.include_router(group.router)
        wrapper.add_api_route(
            "/{rest:path}",
            _unknown_gated_path,
            methods=FALLBACK_METHODS,
            include_in_schema=False,
        )
        app.include_router(wrapper, dependencies=[Depends(require_auth)])
        logger.debug("Mounted %s (auth required)", group.prefix)
