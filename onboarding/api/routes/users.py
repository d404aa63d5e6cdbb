"""Account routes - own profile and admin account management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from onboarding.api.deps import (
    get_current_user,
    get_db_session,
    get_employee_id_generator,
    get_page,
)
from onboarding.api.schemas.users import (
    AdminUpdateAccountRequest,
    PagedProfilesResponse,
    ProfileResponse,
    UpdateProfileRequest,
)
from onboarding.domain import User
from onboarding.domain.models import AccountFilter, Page
from onboarding.domain.services import AccountService
from onboarding.infrastructure.employee_ids import EmployeeIdGenerator
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=ProfileResponse, summary="Get my profile")
async def get_profile(
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> ProfileResponse:
    return ProfileResponse.from_domain(await AccountService(session).get_profile(user))


@router.put("/profile", response_model=ProfileResponse, summary="Update my profile")
async def update_profile(
    payload: UpdateProfileRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> ProfileResponse:
    view = await AccountService(session).update_own_profile(
        user, payload.model_dump(exclude_unset=True)
    )
    return ProfileResponse.from_domain(view)


@router.get("/", response_model=PagedProfilesResponse, summary="List accounts")
async def list_accounts(
    role: str | None = Query(None),
    department: str | None = Query(None),
    onboarding_status: str | None = Query(None, alias="status"),
    page: Page = Depends(get_page),  # noqa: B008
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> PagedProfilesResponse:
    result = await AccountService(session).list_accounts(
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


@router.get("/{account_id}", response_model=ProfileResponse, summary="Get an account")
async def get_account(
    account_id: str,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> ProfileResponse:
    view = await AccountService(session).get_account(user, account_id)
    return ProfileResponse.from_domain(view)


@router.put("/{account_id}", response_model=ProfileResponse, summary="Update an account")
async def update_account(
    account_id: str,
    payload: AdminUpdateAccountRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    id_generator: EmployeeIdGenerator = Depends(get_employee_id_generator),  # noqa: B008
) -> ProfileResponse:
    view = await AccountService(session, id_generator=id_generator).admin_update_account(
        user, account_id, payload.model_dump(exclude_unset=True)
    )
    return ProfileResponse.from_domain(view)


@router.patch(
    "/{account_id}/deactivate",
    response_model=ProfileResponse,
    summary="Deactivate an account",
)
async def deactivate_account(
    account_id: str,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> ProfileResponse:
    view = await AccountService(session).deactivate_account(user, account_id)
    return ProfileResponse.from_domain(view)
