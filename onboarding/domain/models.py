from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from onboarding.core.auth import Role
from onboarding.domain.errors import ValidationError

T = TypeVar("T")


@dataclass(slots=True)
class User:
    """Represents an authenticated actor within the system."""

    user_id: str
    role: Role
    email: str = ""
    full_name: str | None = None
    employee_id: str | None = None
    department: str | None = None
    is_active: bool = True
    session_id: str | None = None


@dataclass(slots=True)
class Account:
    """Profile record of an onboarded person, keyed by identity id."""

    id: str
    email: str
    role: str
    full_name: str | None
    employee_id: str | None = None
    department: str | None = None
    position: str | None = None
    start_date: date | None = None
    phone: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class OnboardingProgress:
    employee_id: str
    started_at: datetime
    onboarding_status: str
    last_updated_at: datetime


@dataclass(slots=True)
class FormSubmission:
    id: str
    employee_id: str
    form_type: str
    fields: dict[str, Any]
    electronic_signature: str
    signature_date: date
    submitted_at: datetime
    amended_at: datetime | None = None


@dataclass(slots=True)
class ProvisionedAccount:
    account: Account
    progress: OnboardingProgress | None = None


@dataclass(slots=True)
class EmployeeOnboarding:
    """Aggregate row pairing an account with its progress record (if any)."""

    account: Account
    progress: OnboardingProgress | None


@dataclass(slots=True)
class EmployeeDetail:
    account: Account
    progress: OnboardingProgress
    forms: dict[str, FormSubmission]
    completed_count: int
    required_count: int


@dataclass(slots=True, frozen=True)
class Page:
    """Offset pagination request (1-based page number)."""

    page: int = 1
    page_size: int = 10

    @classmethod
    def create(cls, page: int, page_size: int, *, max_page_size: int) -> Page:
        if page < 1:
            raise ValidationError("page", "page must be a positive integer")
        if page_size < 1:
            raise ValidationError("page_size", "page_size must be a positive integer")
        return cls(page=page, page_size=min(page_size, max_page_size))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(slots=True)
class AccountFilter:
    role: str | None = None
    department: str | None = None
    onboarding_status: str | None = None


@dataclass(slots=True)
class SubmissionFilter:
    form_type: str | None = None
    employee_id: str | None = None
    submitted_from: datetime | None = None
    submitted_to: datetime | None = None


@dataclass(slots=True)
class Paged(Generic[T]):
    items: list[T]
    page: int
    page_size: int
    total: int
