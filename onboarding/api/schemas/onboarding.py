"""Pydantic schemas for onboarding progress and form endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from onboarding.api.schemas.users import AccountResponse, ProgressResponse
from onboarding.domain import EmployeeDetail, FormSubmission
from onboarding.domain.forms import FormTypeDescriptor
from pydantic import BaseModel, ConfigDict, Field


class FormTypeResponse(BaseModel):
    identifier: str
    label: str
    signature_field: str
    required_fields: list[str]
    fields: list[str]

    @classmethod
    def from_descriptor(cls, descriptor: FormTypeDescriptor) -> FormTypeResponse:
        return cls(
            identifier=descriptor.identifier,
            label=descriptor.label,
            signature_field=descriptor.signature_field,
            required_fields=list(descriptor.required_fields),
            fields=list(descriptor.fields),
        )


class CatalogResponse(BaseModel):
    forms: list[FormTypeResponse]
    required_count: int


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    employee_id: str
    form_type: str
    fields: dict[str, Any]
    electronic_signature: str
    signature_date: date
    submitted_at: datetime
    amended_at: datetime | None = None


class SubmissionRecordedResponse(BaseModel):
    message: str
    submission: SubmissionResponse
    progress: ProgressResponse


class AmendSubmissionRequest(BaseModel):
    """A replacement field set plus the reason it supersedes the signed original."""

    reason: str = Field(..., min_length=1, max_length=512)
    fields: dict[str, Any]


class FormsResponse(BaseModel):
    """Submitted forms keyed by form type; unsubmitted types are omitted."""

    forms: dict[str, SubmissionResponse]
    completed_count: int
    required_count: int


class EmployeeDetailResponse(BaseModel):
    account: AccountResponse
    progress: ProgressResponse
    forms: dict[str, SubmissionResponse]
    completed_count: int
    required_count: int

    @classmethod
    def from_domain(cls, detail: EmployeeDetail) -> EmployeeDetailResponse:
        return cls(
            account=AccountResponse.model_validate(detail.account),
            progress=ProgressResponse.model_validate(detail.progress),
            forms=_submissions(detail.forms),
            completed_count=detail.completed_count,
            required_count=detail.required_count,
        )


class PagedSubmissionsResponse(BaseModel):
    items: list[SubmissionResponse]
    page: int
    page_size: int
    total: int


class StatusOverrideRequest(BaseModel):
    status: str = Field(..., description="pending, in_progress or completed")


def _submissions(forms: dict[str, FormSubmission]) -> dict[str, SubmissionResponse]:
    return {
        form_type: SubmissionResponse.model_validate(submission)
        for form_type, submission in forms.items()
    }


def forms_response(forms: dict[str, FormSubmission], required: frozenset[str]) -> FormsResponse:
    return FormsResponse(
        forms=_submissions(forms),
        completed_count=len(required.intersection(forms)),
        required_count=len(required),
    )
