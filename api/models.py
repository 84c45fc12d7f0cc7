"""
API request and response models for Archilogic REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire names follow the existing client contract: signup fields are
snake_case, the login response is camelCase (tokenType, loginMessage).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import LoginResult, Principal

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/signin."""

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=100)


class SignUpRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup.

    role is optional. Omitted or empty means ROLE_USER; "admin" requests
    ROLE_ADMIN. See auth/service.py for how other values are treated.
    """

    username: str = Field(min_length=3, max_length=50, examples=["johndoe"])
    first_name: str = Field(min_length=1, max_length=50, examples=["John"])
    last_name: str = Field(min_length=1, max_length=50, examples=["Doe"])
    email: str = Field(min_length=3, max_length=100, pattern=EMAIL_PATTERN, examples=["johndoe@example.com"])
    phone_number: str = Field(min_length=1, max_length=15, examples=["+15551234567"])
    password: str = Field(min_length=8, max_length=100)
    role: Optional[list[str]] = Field(default=None, examples=[["user"]])

    @field_validator("username", "first_name", "last_name", "email", "phone_number", mode="before")
    @classmethod
    def strip_identity_fields(cls, value):
        # Identity fields only. The password is hashed exactly as sent.
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        """Reject passwords bcrypt would truncate rather than silently ignore the tail."""
        if len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
            raise ValueError(f"Password must be at most {_BCRYPT_MAX_BYTES} bytes when UTF-8 encoded.")
        return value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    """Response body for a successful POST /api/v1/auth/signin."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    token: str
    token_type: str = Field(default="Bearer", alias="tokenType")
    id: int
    username: str
    email: str
    roles: list[str]
    login_message: str = Field(alias="loginMessage")

    @classmethod
    def from_result(cls, result: LoginResult) -> "LoginResponse":
        return cls(
            token=result.token,
            token_type=result.token_type,
            id=result.id,
            username=result.username,
            email=result.email,
            roles=result.roles,
            login_message=result.login_message,
        )


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ProfileResponse(BaseModel):
    """Response for GET /api/v1/users/me. Never includes the password digest."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    phone_number: str
    roles: list[str]

    @classmethod
    def from_principal(cls, principal: Principal) -> "ProfileResponse":
        return cls(
            id=principal.id,
            username=principal.username,
            email=principal.email,
            first_name=principal.first_name,
            last_name=principal.last_name,
            phone_number=principal.phone_number,
            roles=list(principal.roles),
        )


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
