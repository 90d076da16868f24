"""
PeriodCare Backend - Feature Router Mount Points
==================================================

Period tracking, posts and the Spotify integration are separate feature
modules. This service only decides where they mount and whether the auth
gate guards them; their endpoints live with the features themselves.

Each placeholder router answers GET / with the identity it was handed,
which is what the feature code sees when it is plugged in.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from periodcare.routes.deps import get_identity
from periodcare.schemas.api import IdentityResponse
from periodcare.services.session_verifier import SessionIdentity


def build_feature_router(name: str) -> APIRouter:
    router = APIRouter(tags=[name.capitalize()])

    @router.get("/", response_model=IdentityResponse)
    async def whoami(
        identity: Optional[SessionIdentity] = Depends(get_identity),
    ) -> IdentityResponse:
        if identity is None:
            return IdentityResponse(router=name)
        return IdentityResponse(
            router=name, user_id=identity.user_id, session_id=identity.session_id
        )

    return router


period_router = build_feature_router("period")
post_router = build_feature_router("post")
spotify_router = build_feature_router("spotify")
