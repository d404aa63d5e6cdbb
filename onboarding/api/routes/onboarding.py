"""Onboarding routes - form catalog, submissions and progress views."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from onboarding.api.deps import get_current_user, get_db_session, get_page
from onboarding.api.schemas.onboarding import (
    AmendSubmissionRequest,
    CatalogResponse,
    EmployeeDetailResponse,
    FormsResponse,
    FormTypeResponse,
    PagedSubmissionsResponse,
    StatusOverrideRequest,
    SubmissionRecordedResponse,
    SubmissionResponse,
    forms_response,
)
from onboarding.api.schemas.users import PagedProfilesResponse, ProfileResponse, ProgressResponse
from onboarding.domain import User
from onboarding.domain.forms import FORM_CATALOG, REQUIRED_FORM_TYPES
from onboarding.domain.models import AccountFilter, FormSubmission, Page, SubmissionFilter
from onboarding.domain.services import ProgressTracker, SubmissionLedger
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.get("/catalog", response_model=CatalogResponse, summary="List onboarding form types")
async def get_catalog(user: User = Depends(get_current_user)) -> CatalogResponse:  # noqa: B008
    return CatalogResponse(
        forms=[
            FormTypeResponse.from_descriptor(descriptor) for descriptor in FORM_CATALOG.values()
        ],
        required_count=len(REQUIRED_FORM_TYPES),
    )


@router.get(
    "/progress",
    response_model=ProgressResponse,
    summary="Get my onboarding progress",
    description="Returns the caller's progress record, creating it on first access.",
)
async def get_progress(
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> ProgressResponse:
    progress = await ProgressTracker(session).get_progress(user)
    return ProgressResponse.model_validate(progress)


@router.get("/forms", response_model=FormsResponse, summary="List my submitted forms")
async def get_my_forms(
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> FormsResponse:
    forms = await SubmissionLedger(session).list_for_employee(user, user.user_id)
    return forms_response(forms, REQUIRED_FORM_TYPES)


@router.get(
    "/forms/{form_type}", response_model=SubmissionResponse, summary="Get a submitted form"
)
async def get_form(
    form_type: str,
    employee_id: str | None = Query(None, description="Target employee (managers and admins)"),
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> SubmissionResponse:
    submission = await SubmissionLedger(session).get_submission(
        user, employee_id or user.user_id, form_type
    )
    return SubmissionResponse.model_validate(submission)


@router.post(
    "/forms/{form_type}",
    response_model=SubmissionRecordedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit an onboarding form",
    description="Each form type can be submitted once; later changes go through an amendment.",
)
async def submit_form(
    form_type: str,
    fields: dict[str, Any] = Body(...),  # noqa: B008
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> SubmissionRecordedResponse:
    tracker = ProgressTracker(session)
    submission = await SubmissionLedger(session, tracker).submit(
        user, user.user_id, form_type, fields
    )
    return await _recorded(f"{form_type} submitted", submission, tracker)


@router.put(
    "/forms/{form_type}",
    response_model=SubmissionRecordedResponse,
    summary="Amend a submitted form",
    description="Supersedes a signed form; the replaced version is kept for audit.",
)
async def amend_form(
    form_type: str,
    payload: AmendSubmissionRequest,
    employee_id: str | None = Query(None, description="Target employee (admins only)"),
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> SubmissionRecordedResponse:
    tracker = ProgressTracker(session)
    submission = await SubmissionLedger(session, tracker).amend(
        user, employee_id or user.user_id, form_type, payload.fields, payload.reason
    )
    return await _recorded(f"{form_type} amended", submission, tracker)


@router.get(
    "/admin/all",
    response_model=PagedProfilesResponse,
    summary="List employees with onboarding progress",
)
async def list_employee_progress(
    onboarding_status: str | None = Query(None, alias="status"),
    department: str | None = Query(None),
    role: str | None = Query(None),
    page: Page = Depends(get_page),  # noqa: B008
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> PagedProfilesResponse:
    result = await ProgressTracker(session).get_aggregate_view(
        user,
        AccountFilter(role=role, department=department, onboarding_status=onboarding_status),
        page,
    )
    return PagedProfilesResponse(
        items=[ProfileResponse.from_domain(item) for item in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
    )


@router.get(
    "/admin/employee/{employee_id}",
    response_model=EmployeeDetailResponse,
    summary="Get one employee's onboarding detail",
)
async def get_employee_detail(
    employee_id: str,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> EmployeeDetailResponse:
    detail = await ProgressTracker(session).get_employee_detail(user, employee_id)
    return EmployeeDetailResponse.from_domain(detail)


@router.get(
    "/admin/submissions",
    response_model=PagedSubmissionsResponse,
    summary="Audit form submissions",
)
async def list_submissions(
    form_type: str | None = Query(None),
    employee_id: str | None = Query(None),
    submitted_from: datetime | None = Query(None),
    submitted_to: datetime | None = Query(None),
    page: Page = Depends(get_page),  # noqa: B008
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> PagedSubmissionsResponse:
    result = await SubmissionLedger(session).list_all(
        user,
        SubmissionFilter(
            form_type=form_type,
            employee_id=employee_id,
            submitted_from=submitted_from,
            submitted_to=submitted_to,
        ),
        page,
    )
    return PagedSubmissionsResponse(
        items=[SubmissionResponse.model_validate(item) for item in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
    )


@router.patch(
    "/admin/employee/{employee_id}/status",
    response_model=ProgressResponse,
    summary="Override an employee's onboarding status",
)
async def override_status(
    employee_id: str,
    payload: StatusOverrideRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> ProgressResponse:
    progress = await ProgressTracker(session).override_status(user, employee_id, payload.status)
    return ProgressResponse.model_validate(progress)


async def _recorded(
    message: str, submission: FormSubmission, tracker: ProgressTracker
) -> SubmissionRecordedResponse:
    progress = await tracker.ensure_progress(submission.employee_id)
    return SubmissionRecordedResponse(
        message=message,
        submission=SubmissionResponse.model_validate(submission),
        progress=ProgressResponse.model_validate(progress),
    )
