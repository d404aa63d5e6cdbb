"""Sign-in sessions, token issuance and credential changes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import structlog
from onboarding.core.auth import (
    PASSWORD_RESET_TOKEN,
    REFRESH_TOKEN,
    TokenError,
    create_access_token,
    decode_access_token,
)
from onboarding.core.config import get_settings
from onboarding.domain.errors import (
    AuthorizationDenied,
    InvalidCredentials,
    NotFound,
    ValidationError,
)
from onboarding.domain.models import Account, User
from onboarding.infrastructure.db.models import AccountModel
from onboarding.infrastructure.identity import IdentityStore
from onboarding.infrastructure.repositories import AccountRepository, to_account
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

TWO_FACTOR_TYPES = ("totp", "phone")


@dataclass(slots=True)
class SessionTokens:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass(slots=True)
class SignInResult:
    account: Account
    tokens: SessionTokens


class SessionService:
    """Authentication flows layered over the identity store."""

    def __init__(self, session: AsyncSession, identity_store: IdentityStore) -> None:
        self.session = session
        self.identity_store = identity_store
        self.accounts = AccountRepository(session)

    async def sign_in(self, email: str, password: str) -> SignInResult:
        await logger.ainfo("login_attempt", email=email.lower())
        identity_session = await self.identity_store.sign_in(email, password)

        account = await self.accounts.get(identity_session.identity_id, refresh=True)
        if account is None:
            await self.identity_store.sign_out(identity_session.session_id)
            raise NotFound("Account profile not found")
        if not account.is_active:
            await self.identity_store.sign_out(identity_session.session_id)
            await logger.awarning("login_inactive_account", account_id=account.id)
            raise AuthorizationDenied("Account is deactivated")

        tokens = self._issue_tokens(account, identity_session.session_id)
        await logger.ainfo(
            "login_success", account_id=account.id, session_id=identity_session.session_id
        )
        return SignInResult(account=to_account(account), tokens=tokens)

    async def refresh(self, refresh_token: str) -> SessionTokens:
        """Exchange a refresh token for a new token pair bound to the same session."""
        try:
            payload = decode_access_token(refresh_token, expected_type=REFRESH_TOKEN)
        except TokenError as exc:
            raise InvalidCredentials("Invalid refresh token") from exc

        session_id = payload.get("sid")
        if not session_id or not await self.identity_store.is_session_active(session_id):
            raise InvalidCredentials("Session has ended")

        account = await self.accounts.get(payload["sub"], refresh=True)
        if account is None or not account.is_active:
            raise InvalidCredentials("Account is not available")
        return self._issue_tokens(account, session_id)

    async def sign_out(self, actor: User) -> None:
        if actor.session_id:
            await self.identity_store.sign_out(actor.session_id)
        await logger.ainfo("logout", account_id=actor.user_id, session_id=actor.session_id)

    async def reset_password(self, email: str) -> str | None:
        """Start a password reset.

        Returns the reset token for a known email and ``None`` otherwise;
        callers must respond identically in both cases. Delivering the token
        is left to the caller.
        """
        token = await self.identity_store.reset_password(email)
        await logger.ainfo(
            "password_reset_requested", email=email.lower(), known=token is not None
        )
        return token

    async def complete_password_reset(self, token: str, new_password: str) -> None:
        try:
            payload = decode_access_token(token, expected_type=PASSWORD_RESET_TOKEN)
        except TokenError as exc:
            raise InvalidCredentials("Invalid or expired reset token") from exc

        fingerprint = payload.get("pwf")
        if not fingerprint:
            raise InvalidCredentials("Invalid or expired reset token")

        try:
            await self.identity_store.complete_password_reset(
                payload["sub"], fingerprint, new_password
            )
        except NotFound as exc:
            raise InvalidCredentials("Invalid or expired reset token") from exc
        await logger.ainfo("password_reset_completed", account_id=payload["sub"])

    async def change_password(
        self, actor: User, current_password: str, new_password: str
    ) -> None:
        """Replace the caller's password; every open session is ended."""
        if not await self.identity_store.verify_credentials(actor.user_id, current_password):
            await logger.awarning("password_change_rejected", account_id=actor.user_id)
            raise InvalidCredentials("Current password is incorrect")
        if new_password == current_password:
            raise ValidationError(
                "new_password", '"new_password" must differ from the current password'
            )

        await self.identity_store.update_password(actor.user_id, new_password)
        await logger.ainfo("password_changed", account_id=actor.user_id)

    async def enable_two_factor(self, actor: User, factor_type: str) -> str:
        """Acknowledge a two-factor enrollment request; only initiation is recorded."""
        if factor_type not in TWO_FACTOR_TYPES:
            raise ValidationError(
                "factor_type", f'"factor_type" must be one of {", ".join(TWO_FACTOR_TYPES)}'
            )
        await logger.ainfo(
            "two_factor_enrollment_started", account_id=actor.user_id, factor_type=factor_type
        )
        return factor_type

    def _issue_tokens(self, account: AccountModel, session_id: str) -> SessionTokens:
        settings = get_settings()
        roles = [account.role.value]

        access_token = create_access_token(
            account.id,
            roles=roles,
            email=account.email,
            session_id=session_id,
        )
        refresh_token = create_access_token(
            account.id,
            roles=roles,
            email=account.email,
            expires_delta=timedelta(seconds=settings.refresh_token_ttl_seconds),
            session_id=session_id,
            token_type=REFRESH_TOKEN,
        )
        return SessionTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.access_token_ttl_seconds,
        )
