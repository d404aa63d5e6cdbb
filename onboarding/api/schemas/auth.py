"""Pydantic schemas for authentication endpoints."""

from __future__ import annotations

from datetime import date

from onboarding.api.schemas.users import AccountResponse, ProgressResponse
from pydantic import BaseModel, EmailStr, Field

# --- Request Schemas ---


class EmployeeSignupRequest(BaseModel):
    """Request schema for employee self-signup."""

    email: EmailStr = Field(..., description="Work email address")
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (min 8 characters)",
    )
    full_name: str | None = Field(None, max_length=128, description="Employee's full name")
    department: str | None = Field(None, max_length=128)
    position: str | None = Field(None, max_length=128)
    phone: str | None = Field(None, max_length=32)
    start_date: date | None = None

    def profile_fields(self) -> dict:
        return self.model_dump(exclude={"email", "password", "role"}, exclude_none=True)


class PrivilegedSignupRequest(EmployeeSignupRequest):
    """Request schema for admin-created manager and admin accounts."""

    role: str = Field(..., description="manager or admin")


class LoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class RefreshTokenRequest(BaseModel):
    """Request schema for token refresh."""

    refresh_token: str = Field(..., description="Refresh token")


class ResetPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordConfirmRequest(BaseModel):
    token: str = Field(..., description="Password reset token")
    new_password: str = Field(..., min_length=8, max_length=128)


class ChangePasswordRequest(BaseModel):
    """Request schema for password change."""

    current_password: str = Field(..., description="Current password")
    new_password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="New password (min 8 characters)",
    )


class EnableTwoFactorRequest(BaseModel):
    factor_type: str = Field(..., description="totp or phone")


# --- Response Schemas ---


class TokenResponse(BaseModel):
    """Response schema containing JWT tokens."""

    model_config = {"from_attributes": True}

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str | None = Field(None, description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token TTL in seconds")


class SignupResponse(BaseModel):
    message: str
    account: AccountResponse
    progress: ProgressResponse | None = None


class LoginResponse(BaseModel):
    message: str
    account: AccountResponse
    tokens: TokenResponse


class MessageResponse(BaseModel):
    message: str


class TwoFactorResponse(BaseModel):
    message: str
    factor_type: str
