"""
API response models for the AuthLane demo REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API
layer. They are intentionally separate from accounts/models.py and from
authlane.CredentialRecord, which own the internal representation. Route
handlers map between the two.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


class SessionResponse(BaseModel):
    """Response for GET /api/v1/session.

    user is the session credential dump (only the serialized fields), or
    None when the request is not authorized.
    """

    authorized: bool
    user: Optional[dict[str, Any]] = None
    roles: list[str] = Field(default_factory=list, description="Role strategies the user currently passes.")
