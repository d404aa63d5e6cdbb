from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from onboarding.core.auth import TokenError, decode_access_token
from onboarding.core.config import get_settings
from onboarding.domain import User
from onboarding.domain.errors import AuthorizationDenied, NotFound
from onboarding.domain.models import Page
from onboarding.domain.services import AccountService
from onboarding.infrastructure.db.session import get_session
from onboarding.infrastructure.employee_ids import (
    EmployeeIdGenerator,
    SequenceEmployeeIdGenerator,
)
from onboarding.infrastructure.identity import IdentityStore, LocalIdentityStore
from sqlalchemy.ext.asyncio import AsyncSession

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Provide an async SQLAlchemy session for API handlers."""
    async for session in get_session():
        yield session


def get_identity_store(
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> IdentityStore:
    return LocalIdentityStore(session)


def get_employee_id_generator(
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> EmployeeIdGenerator:
    return SequenceEmployeeIdGenerator(session)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
) -> User:
    """Resolve the authenticated caller from a bearer token and their stored profile."""
    if credentials is None:
        raise _unauthorized("Missing bearer token")

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenError as exc:
        raise _unauthorized(str(exc)) from exc

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Token missing subject")

    session_id = payload.get("sid")
    if session_id and not await identity_store.is_session_active(session_id):
        raise _unauthorized("Session has ended")

    try:
        user = await AccountService(session).resolve_user(user_id, session_id=session_id)
    except NotFound as exc:
        raise _unauthorized("Account not found") from exc
    except AuthorizationDenied as exc:
        raise _forbidden(exc.message) from exc

    request.state.user = user
    return user


def get_page(
    page: int = Query(1, description="1-based page number"),
    page_size: int | None = Query(None, description="Items per page"),
) -> Page:
    """Pagination parameters; out-of-range values are rejected by ``Page.create``."""
    settings = get_settings()
    return Page.create(
        page,
        page_size if page_size is not None else settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
