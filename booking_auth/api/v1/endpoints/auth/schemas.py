"""Authentication API schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from booking_auth.api.v1.schemas import ApiModel, UserProfileResponse


class UserRegistrationRequest(ApiModel):
    """User registration request schema."""

    username: str = Field(
        ...,
        min_length=3,
        max_length=50,
        description="Username (3-50 characters)",
        examples=["john_doe"],
    )
    email: EmailStr = Field(
        ...,
        max_length=100,
        description="User email address",
        examples=["john.doe@example.com"],
    )
    password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        description="Password (6-128 characters)",
        examples=["secure_password_123"],
    )
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    role_ids: Optional[List[str]] = Field(
        None,
        description="Roles to assign; honoured only for callers allowed to manage users",
    )

    @field_validator("username", "first_name", "last_name")
    @classmethod
    def strip_whitespace(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else value

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class UserLoginRequest(ApiModel):
    """User login request schema."""

    email: EmailStr = Field(..., description="Account email", examples=["john.doe@example.com"])
    password: str = Field(..., min_length=1, description="Password")

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class RefreshTokenRequest(ApiModel):
    """Refresh token request schema."""

    refresh_token: str = Field(..., min_length=1, description="Refresh token")


class LogoutRequest(ApiModel):
    """Logout request schema; the refresh token is optional."""

    refresh_token: Optional[str] = Field(None, description="Refresh token to revoke")


class ChangePasswordRequest(ApiModel):
    """Change password request schema."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class AuthResponse(ApiModel):
    """Register and login response data."""

    user: UserProfileResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime


class TokenPairResponse(ApiModel):
    """Refresh response data."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime


class CsrfTokenResponse(ApiModel):
    """CSRF token response data."""

    csrf_token: str


class LogoutAllResponse(ApiModel):
    """Logout-all response data."""

    revoked_sessions: int
