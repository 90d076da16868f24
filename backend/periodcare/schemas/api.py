"""
PeriodCare Backend - Pydantic Response Schemas
================================================

What:  Response models for the routes this service owns.
Why:   The React frontend already reads camelCase keys (`clerkConfigured`,
       `nodeEnv`) and bare `{products}` / `{error}` objects; the schemas pin
       that contract and document it in OpenAPI.
How:   Fields use snake_case in Python and serialization aliases on the wire.
       FastAPI serializes response_model by alias.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """GET /health: liveness plus which secrets are configured (never their values)."""

    message: str = Field(default="Backend running successfully!")
    clerk_configured: bool = Field(serialization_alias="clerkConfigured")
    clerk_publishable_configured: bool = Field(serialization_alias="clerkPublishableConfigured")
    search_configured: bool = Field(serialization_alias="searchConfigured")
    node_env: str = Field(serialization_alias="nodeEnv")


class ProductsResponse(BaseModel):
    """GET /api/products: provider results passed through unchanged."""

    products: List[Dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Every error body has exactly this shape; correlation is in X-Request-ID."""

    error: str


class SessionResponse(BaseModel):
    signed_in: bool = Field(serialization_alias="signedIn")
    user_id: Optional[str] = Field(default=None, serialization_alias="userId")


class IdentityResponse(BaseModel):
    """Echo of the identity a mounted feature router receives."""

    router: str
    user_id: Optional[str] = Field(default=None, serialization_alias="userId")
    session_id: Optional[str] = Field(default=None, serialization_alias="sessionId")


class WebhookAck(BaseModel):
    received: bool = True
    type: Optional[str] = None
