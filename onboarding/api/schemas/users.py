"""Pydantic schemas for account and profile endpoints."""

from __future__ import annotations

from datetime import date, datetime

from onboarding.domain import EmployeeOnboarding
from pydantic import BaseModel, ConfigDict, Field

# --- Shared Response Schemas ---


class AccountResponse(BaseModel):
    """Profile record of an account."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    role: str
    full_name: str | None = None
    employee_id: str | None = None
    department: str | None = None
    position: str | None = None
    start_date: date | None = None
    phone: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProgressResponse(BaseModel):
    """Onboarding progress of one employee."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    started_at: datetime
    onboarding_status: str = Field(..., description="pending, in_progress or completed")
    last_updated_at: datetime


class ProfileResponse(BaseModel):
    account: AccountResponse
    progress: ProgressResponse | None = None

    @classmethod
    def from_domain(cls, view: EmployeeOnboarding) -> ProfileResponse:
        return cls(
            account=AccountResponse.model_validate(view.account),
            progress=(
                ProgressResponse.model_validate(view.progress)
                if view.progress is not None
                else None
            ),
        )


class PagedProfilesResponse(BaseModel):
    items: list[ProfileResponse]
    page: int
    page_size: int
    total: int


# --- Request Schemas ---


class UpdateProfileRequest(BaseModel):
    """Fields an account holder may change on their own profile."""

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(None, max_length=128)
    department: str | None = Field(None, max_length=128)
    position: str | None = Field(None, max_length=128)
    phone: str | None = Field(None, max_length=32)


class AdminUpdateAccountRequest(UpdateProfileRequest):
    """Privileged account changes available to admins."""

    role: str | None = Field(None, description="employee, manager or admin")
    is_active: bool | None = None
    start_date: date | None = None
