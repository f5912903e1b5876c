"""
API request and response models for SessionAuth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

No response model has a password_hash field, so a hash cannot leak through
serialization even if a handler passes an Account's attributes wholesale.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Account

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    username: str = Field(max_length=255)
    # Passwords are opaque -- never stripped or normalized.
    password: str = Field(max_length=1024)


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    Length and emptiness rules live in CredentialVerifier.register() so the
    API and the web form reject the same inputs with the same codes.
    """

    username: str = Field(max_length=1024)
    password: str = Field(max_length=1024)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public view of an Account."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(id=account.id, username=account.username, created_at=account.created_at)


class LoginResponse(BaseModel):
    """Response for a successful POST /api/v1/auth/login.

    The session token is also set as an httpOnly cookie. It is echoed in the
    body for API clients that use Authorization: Bearer instead of cookies.
    """

    model_config = ConfigDict(frozen=True)

    session_token: str
    token_type: str = "bearer"
    expires_in: int
    account: AccountResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


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
