"""
API request and response models for vendportal REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Role

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    bcrypt refuses secrets longer than 72 bytes; the verifier turns that into
    a failed check, so the 255-character cap only bounds request size.
    Passwords are not stripped: surrounding whitespace is part of the secret.
    """

    email: str = Field(min_length=1, max_length=254)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    role: Role
    merchant_id: Optional[int] = None
    home: str


class MeResponse(BaseModel):
    """Claims of the current session plus non-authoritative display fields."""

    model_config = ConfigDict(frozen=True)

    account_id: int
    display_name: str
    email: str
    role: Role
    merchant_id: Optional[int] = None
    issued_at: str
    expires_at: str
    display: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


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

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
