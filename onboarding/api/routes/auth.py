"""Authentication routes - signup, login, sessions and credentials."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from onboarding.api.deps import (
    get_current_user,
    get_db_session,
    get_employee_id_generator,
    get_identity_store,
)
from onboarding.api.schemas.auth import (
    ChangePasswordRequest,
    EmployeeSignupRequest,
    EnableTwoFactorRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PrivilegedSignupRequest,
    RefreshTokenRequest,
    ResetPasswordConfirmRequest,
    ResetPasswordRequest,
    SignupResponse,
    TokenResponse,
    TwoFactorResponse,
)
from onboarding.api.schemas.users import AccountResponse, ProgressResponse
from onboarding.domain import User
from onboarding.domain.models import ProvisionedAccount
from onboarding.domain.services import IdentityProvisioner, SessionService
from onboarding.infrastructure.employee_ids import EmployeeIdGenerator
from onboarding.infrastructure.identity import IdentityStore
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth", tags=["authentication"])

RESET_REQUESTED_MESSAGE = "If the email is registered, a password reset has been started"


@router.post(
    "/signup/employee",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Employee self-signup",
    description="Create an employee account, assign an employee ID and start onboarding.",
)
async def signup_employee(
    payload: EmployeeSignupRequest,
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
    id_generator: EmployeeIdGenerator = Depends(get_employee_id_generator),  # noqa: B008
) -> SignupResponse:
    provisioner = IdentityProvisioner(session, identity_store, id_generator)
    provisioned = await provisioner.signup_employee(
        payload.email, payload.password, payload.profile_fields()
    )
    return _signup_response("Employee account created", provisioned)


@router.post(
    "/signup/admin",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a manager or admin account",
    description="Admin-only creation of privileged accounts.",
)
async def signup_privileged(
    payload: PrivilegedSignupRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
    id_generator: EmployeeIdGenerator = Depends(get_employee_id_generator),  # noqa: B008
) -> SignupResponse:
    provisioner = IdentityProvisioner(session, identity_store, id_generator)
    provisioned = await provisioner.signup_privileged(
        user, payload.email, payload.password, payload.role, payload.profile_fields()
    )
    return _signup_response(f"{payload.role.capitalize()} account created", provisioned)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    description="Authenticate with email and password, returns JWT tokens bound to a session.",
)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
) -> LoginResponse:
    result = await SessionService(session, identity_store).sign_in(
        payload.email, payload.password
    )
    return LoginResponse(
        message="Login successful",
        account=AccountResponse.model_validate(result.account),
        tokens=TokenResponse.model_validate(result.tokens),
    )


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
async def refresh(
    payload: RefreshTokenRequest,
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
) -> TokenResponse:
    tokens = await SessionService(session, identity_store).refresh(payload.refresh_token)
    return TokenResponse.model_validate(tokens)


@router.post("/logout", response_model=MessageResponse, summary="End the current session")
async def logout(
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
) -> MessageResponse:
    await SessionService(session, identity_store).sign_out(user)
    return MessageResponse(message="Logged out")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Start a password reset",
    description="Always succeeds so that registered emails cannot be discovered.",
)
async def reset_password(
    payload: ResetPasswordRequest,
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
) -> MessageResponse:
    await SessionService(session, identity_store).reset_password(payload.email)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/reset-password/confirm",
    response_model=MessageResponse,
    summary="Complete a password reset",
)
async def confirm_reset_password(
    payload: ResetPasswordConfirmRequest,
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
) -> MessageResponse:
    await SessionService(session, identity_store).complete_password_reset(
        payload.token, payload.new_password
    )
    return MessageResponse(message="Password has been reset")


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
    description="Change the current user's password and end all of their sessions.",
)
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
) -> MessageResponse:
    await SessionService(session, identity_store).change_password(
        user, payload.current_password, payload.new_password
    )
    return MessageResponse(message="Password changed successfully")


@router.post("/enable-2fa", response_model=TwoFactorResponse, summary="Start 2FA enrollment")
async def enable_two_factor(
    payload: EnableTwoFactorRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
    identity_store: IdentityStore = Depends(get_identity_store),  # noqa: B008
) -> TwoFactorResponse:
    factor_type = await SessionService(session, identity_store).enable_two_factor(
        user, payload.factor_type
    )
    return TwoFactorResponse(message="Two-factor enrollment started", factor_type=factor_type)


def _signup_response(message: str, provisioned: ProvisionedAccount) -> SignupResponse:
    return SignupResponse(
        message=message,
        account=AccountResponse.model_validate(provisioned.account),
        progress=(
            ProgressResponse.model_validate(provisioned.progress)
            if provisioned.progress is not None
            else None
        ),
    )
