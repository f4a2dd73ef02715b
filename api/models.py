"""
API request and response models for Whendy REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SessionValue(BaseModel):
    """Request body for PUT /api/v1/session/{key}."""

    value: Any = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None


class ClaimsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    claims: dict[str, Any]


class SessionResponse(BaseModel):
    """Response for the /api/v1/session endpoints.

    Only the first 8 characters of the session id are echoed back. The full
    id already lives in the HttpOnly cookie and must not reach page scripts.
    """

    model_config = ConfigDict(frozen=True)

    session_id_prefix: str
    data: dict[str, Any]


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
