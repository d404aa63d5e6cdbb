from __future__ import annotations

import pytest
from onboarding.core.auth import REFRESH_TOKEN, decode_access_token
from onboarding.domain.errors import (
    AuthorizationDenied,
    InvalidCredentials,
    ValidationError,
)
from onboarding.domain.models import User
from onboarding.domain.services import AccountService, SessionService
from onboarding.infrastructure.identity import LocalIdentityStore
from onboarding.infrastructure.repositories import AccountRepository
from sqlalchemy.ext.asyncio import AsyncSession
from tests.utils import PASSWORD, create_account


def _sessions(db: AsyncSession) -> SessionService:
    return SessionService(db, LocalIdentityStore(db))


async def _signed_in_user(db: AsyncSession, email: str) -> tuple[User, str]:
    result = await _sessions(db).sign_in(email, PASSWORD)
    payload = decode_access_token(result.tokens.access_token)
    user = await AccountService(db).resolve_user(payload["sub"], session_id=payload["sid"])
    return user, result.tokens.refresh_token


class TestSignIn:
    async def test_sign_in_issues_session_bound_tokens(self, db: AsyncSession) -> None:
        employee = await create_account(db, "login@example.com")

        result = await _sessions(db).sign_in("LOGIN@example.com", PASSWORD)

        access = decode_access_token(result.tokens.access_token)
        refresh = decode_access_token(result.tokens.refresh_token, expected_type=REFRESH_TOKEN)
        assert result.account.id == employee.user_id
        assert access["sub"] == employee.user_id
        assert access["roles"] == ["employee"]
        assert access["sid"] == refresh["sid"]
        assert result.tokens.token_type == "bearer"

    async def test_wrong_password_is_invalid_credentials(self, db: AsyncSession) -> None:
        await create_account(db, "wrong@example.com")

        with pytest.raises(InvalidCredentials):
            await _sessions(db).sign_in("wrong@example.com", "not-the-password")

    async def test_unknown_email_is_invalid_credentials(self, db: AsyncSession) -> None:
        with pytest.raises(InvalidCredentials):
            await _sessions(db).sign_in("ghost@example.com", PASSWORD)

    async def test_deactivated_account_cannot_sign_in(self, db: AsyncSession) -> None:
        employee = await create_account(db, "inactive@example.com")
        await AccountRepository(db).update(employee.user_id, {"is_active": False})

        with pytest.raises(AuthorizationDenied):
            await _sessions(db).sign_in("inactive@example.com", PASSWORD)


class TestSessionLifecycle:
    async def test_refresh_rotates_tokens_for_same_session(self, db: AsyncSession) -> None:
        await create_account(db, "refresh@example.com")
        user, refresh_token = await _signed_in_user(db, "refresh@example.com")

        tokens = await _sessions(db).refresh(refresh_token)

        assert decode_access_token(tokens.access_token)["sid"] == user.session_id

    async def test_sign_out_ends_the_session(self, db: AsyncSession) -> None:
        await create_account(db, "logout@example.com")
        user, refresh_token = await _signed_in_user(db, "logout@example.com")
        store = LocalIdentityStore(db)

        await SessionService(db, store).sign_out(user)

        assert await store.is_session_active(user.session_id) is False
        with pytest.raises(InvalidCredentials):
            await _sessions(db).refresh(refresh_token)

    async def test_access_token_is_not_a_refresh_token(self, db: AsyncSession) -> None:
        await create_account(db, "swap@example.com")
        result = await _sessions(db).sign_in("swap@example.com", PASSWORD)

        with pytest.raises(InvalidCredentials):
            await _sessions(db).refresh(result.tokens.access_token)


class TestPasswords:
    async def test_reset_flow_replaces_password(self, db: AsyncSession) -> None:
        await create_account(db, "reset@example.com")
        sessions = _sessions(db)

        token = await sessions.reset_password("reset@example.com")
        assert token is not None
        await sessions.complete_password_reset(token, "brand-new-pass")

        result = await sessions.sign_in("reset@example.com", "brand-new-pass")
        assert result.account.email == "reset@example.com"
        with pytest.raises(InvalidCredentials):
            await sessions.sign_in("reset@example.com", PASSWORD)

    async def test_reset_token_cannot_be_replayed(self, db: AsyncSession) -> None:
        await create_account(db, "victim@example.com")
        sessions = _sessions(db)
        token = await sessions.reset_password("victim@example.com")
        await sessions.complete_password_reset(token, "first-new-pass")

        with pytest.raises(InvalidCredentials):
            await sessions.complete_password_reset(token, "attacker-pass-1")

        with pytest.raises(InvalidCredentials):
            await sessions.sign_in("victim@example.com", "attacker-pass-1")
        assert (await sessions.sign_in("victim@example.com", "first-new-pass")).account

    async def test_password_change_spends_outstanding_reset_token(
        self, db: AsyncSession
    ) -> None:
        await create_account(db, "stale@example.com")
        user, _ = await _signed_in_user(db, "stale@example.com")
        sessions = _sessions(db)
        token = await sessions.reset_password("stale@example.com")

        await sessions.change_password(user, PASSWORD, "changed-pass-4")

        with pytest.raises(InvalidCredentials):
            await sessions.complete_password_reset(token, "late-reset-pass")

    async def test_reset_for_unknown_email_returns_nothing(self, db: AsyncSession) -> None:
        assert await _sessions(db).reset_password("nobody@example.com") is None

    async def test_bogus_reset_token_is_rejected(self, db: AsyncSession) -> None:
        with pytest.raises(InvalidCredentials):
            await _sessions(db).complete_password_reset("not-a-token", "brand-new-pass")

    async def test_change_password_revokes_sessions(self, db: AsyncSession) -> None:
        await create_account(db, "change@example.com")
        user, refresh_token = await _signed_in_user(db, "change@example.com")
        sessions = _sessions(db)

        await sessions.change_password(user, PASSWORD, "another-pass-9")

        with pytest.raises(InvalidCredentials):
            await sessions.refresh(refresh_token)
        assert (await sessions.sign_in("change@example.com", "another-pass-9")).account

    async def test_change_password_checks_current(self, db: AsyncSession) -> None:
        await create_account(db, "check@example.com")
        user, _ = await _signed_in_user(db, "check@example.com")

        with pytest.raises(InvalidCredentials):
            await _sessions(db).change_password(user, "guess-1234", "another-pass-9")

    async def test_new_password_must_differ(self, db: AsyncSession) -> None:
        await create_account(db, "same@example.com")
        user, _ = await _signed_in_user(db, "same@example.com")

        with pytest.raises(ValidationError) as exc_info:
            await _sessions(db).change_password(user, PASSWORD, PASSWORD)

        assert exc_info.value.field == "new_password"


class TestTwoFactor:
    async def test_supported_factor_is_acknowledged(self, db: AsyncSession) -> None:
        employee = await create_account(db, "mfa@example.com")

        assert await _sessions(db).enable_two_factor(employee, "totp") == "totp"

    async def test_unsupported_factor_is_rejected(self, db: AsyncSession) -> None:
        employee = await create_account(db, "sms@example.com")

        with pytest.raises(ValidationError):
            await _sessions(db).enable_two_factor(employee, "carrier-pigeon")
