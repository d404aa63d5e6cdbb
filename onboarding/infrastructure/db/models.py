from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class UserRole(str, enum.Enum):
    """Account role enum matching auth.Role."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"


class OnboardingStatus(str, enum.Enum):
    """Aggregate onboarding status derived from submitted forms.

    Note: Must use name='onboarding_status' in Enum() to match database enum type.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @classmethod
    def from_counts(cls, submitted: int, required: int) -> OnboardingStatus:
        if submitted <= 0:
            return cls.PENDING
        if submitted < required:
            return cls.IN_PROGRESS
        return cls.COMPLETED


_STATUS_RANK = {
    OnboardingStatus.PENDING: 0,
    OnboardingStatus.IN_PROGRESS: 1,
    OnboardingStatus.COMPLETED: 2,
}


def _uuid() -> str:
    return str(uuid.uuid4())


class IdentityModel(Base):
    """Credential record owned by the local identity store."""

    __tablename__ = "auth_identities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    user_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    last_sign_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    sessions: Mapped[list[AuthSessionModel]] = relationship(
        back_populates="identity", cascade="all,delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<IdentityModel(id={self.id}, email={self.email})>"


class AuthSessionModel(Base):
    __tablename__ = "auth_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    identity_id: Mapped[str] = mapped_column(
        ForeignKey("auth_identities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    identity: Mapped[IdentityModel] = relationship(back_populates="sessions")


class AccountModel(Base):
    """SQLAlchemy model for users table (profile record keyed by identity id)."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [x.value for x in e]),
        default=UserRole.EMPLOYEE,
        nullable=False,
        index=True,
    )
    full_name: Mapped[str | None] = mapped_column(String(128))
    employee_id: Mapped[str | None] = mapped_column(String(32), unique=True)
    department: Mapped[str | None] = mapped_column(String(128), index=True)
    position: Mapped[str | None] = mapped_column(String(128))
    start_date: Mapped[date | None] = mapped_column(Date)
    phone: Mapped[str | None] = mapped_column(String(32))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    progress: Mapped[OnboardingProgressModel | None] = relationship(
        back_populates="account", uselist=False
    )

    def __repr__(self) -> str:
        return f"<AccountModel(id={self.id}, email={self.email}, role={self.role.value})>"


class EmployeeIdAllocation(Base):
    """Monotonic sequence backing employee ID generation."""

    __tablename__ = "employee_id_allocations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    allocated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class OnboardingProgressModel(Base):
    __tablename__ = "onboarding_progress"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    employee_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    onboarding_status: Mapped[OnboardingStatus] = mapped_column(
        Enum(
            OnboardingStatus,
            name="onboarding_status",
            values_callable=lambda e: [x.value for x in e],
        ),
        default=OnboardingStatus.PENDING,
        nullable=False,
        index=True,
    )
    last_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    account: Mapped[AccountModel] = relationship(back_populates="progress")


class FormSubmissionModel(Base):
    """One signed onboarding form per (employee, form type)."""

    __tablename__ = "form_submissions"
    __table_args__ = (
        UniqueConstraint("employee_id", "form_type", name="uq_submission_per_form"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    employee_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    form_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    fields: Mapped[dict] = mapped_column(JSON, nullable=False)
    electronic_signature: Mapped[str] = mapped_column(String(512), nullable=False)
    signature_date: Mapped[date] = mapped_column(Date, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    amended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    amendments: Mapped[list[FormSubmissionAmendment]] = relationship(
        back_populates="submission",
        cascade="all,delete-orphan",
        order_by="FormSubmissionAmendment.amended_at",
    )


class FormSubmissionAmendment(Base):
    """Audit row preserving the field set a submission had before an amendment."""

    __tablename__ = "form_submission_amendments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    submission_id: Mapped[str] = mapped_column(
        ForeignKey("form_submissions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amended_by: Mapped[str] = mapped_column(String(36), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    previous_fields: Mapped[dict] = mapped_column(JSON, nullable=False)
    previous_signature: Mapped[str] = mapped_column(String(512), nullable=False)
    previous_signature_date: Mapped[date] = mapped_column(Date, nullable=False)
    amended_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    submission: Mapped[FormSubmissionModel] = relationship(back_populates="amendments")


__all__ = [
    "AccountModel",
    "AuthSessionModel",
    "EmployeeIdAllocation",
    "FormSubmissionAmendment",
    "FormSubmissionModel",
    "IdentityModel",
    "OnboardingProgressModel",
    "OnboardingStatus",
    "UserRole",
]
