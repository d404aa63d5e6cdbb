"""Identity store: credentials, sign-in sessions and password resets.

The store is independent of the profile table. When an identity is created
the store also materializes a baseline profile row from the supplied
metadata, the way a database trigger on the identity table would; callers
must not assume that row is complete or even present.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from onboarding.core.auth import create_password_reset_token
from onboarding.domain.errors import (
    IdentityConflict,
    IdentityProviderError,
    InvalidCredentials,
    NotFound,
    StoreError,
)
from onboarding.infrastructure.db.models import (
    AccountModel,
    AuthSessionModel,
    IdentityModel,
    UserRole,
)
from onboarding.infrastructure.repositories.base import UniqueViolation, store_guard
from passlib.context import CryptContext
from sqlalchemy import Update, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def credential_fingerprint(hashed_password: str) -> str:
    """Short digest of a stored hash; it changes whenever the password does."""
    return hashlib.sha256(hashed_password.encode()).hexdigest()[:16]


@dataclass(slots=True)
class IdentityRecord:
    id: str
    email: str


@dataclass(slots=True)
class IdentitySession:
    session_id: str
    identity_id: str
    email: str


class IdentityStore(Protocol):
    """Identity provider operations consumed by the onboarding core."""

    async def create_identity(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> IdentityRecord: ...

    async def sign_in(self, email: str, password: str) -> IdentitySession: ...

    async def sign_out(self, session_id: str) -> None: ...

    async def is_session_active(self, session_id: str) -> bool: ...

    async def reset_password(self, email: str) -> str | None: ...

    async def verify_credentials(self, identity_id: str, password: str) -> bool: ...

    async def update_password(self, identity_id: str, new_password: str) -> None: ...

    async def complete_password_reset(
        self, identity_id: str, fingerprint: str, new_password: str
    ) -> None: ...


class LocalIdentityStore:
    """Identity store backed by the service's own database."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_identity(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> IdentityRecord:
        email = email.lower()
        identity = IdentityModel(
            email=email,
            hashed_password=hash_password(password),
            user_metadata=_json_safe(metadata),
        )
        try:
            async with store_guard(self.session, "identity_create"):
                self.session.add(identity)
                await self.session.flush()
                self._materialize_profile(identity)
                await self.session.commit()
        except UniqueViolation as exc:
            await logger.awarning("identity_duplicate_email", email=email)
            raise IdentityConflict(f"A user with email {email} already exists") from exc
        except StoreError as exc:
            raise IdentityProviderError("Identity store could not create the account") from exc

        await logger.ainfo("identity_created", identity_id=identity.id, email=email)
        return IdentityRecord(id=identity.id, email=identity.email)

    def _materialize_profile(self, identity: IdentityModel) -> None:
        metadata = identity.user_metadata or {}
        try:
            role = UserRole(metadata.get("role", UserRole.EMPLOYEE.value))
        except ValueError:
            role = UserRole.EMPLOYEE
        now = datetime.now(UTC)
        self.session.add(
            AccountModel(
                id=identity.id,
                email=identity.email,
                role=role,
                full_name=metadata.get("full_name"),
                created_at=now,
                updated_at=now,
            )
        )

    async def sign_in(self, email: str, password: str) -> IdentitySession:
        identity = await self._get_by_email(email)
        if identity is None or not verify_password(password, identity.hashed_password):
            await logger.awarning("sign_in_rejected", email=email.lower())
            raise InvalidCredentials("Invalid email or password")

        auth_session = AuthSessionModel(identity_id=identity.id)
        async with store_guard(self.session, "session_create"):
            self.session.add(auth_session)
            identity.last_sign_in_at = datetime.now(UTC)
            await self.session.commit()

        return IdentitySession(
            session_id=auth_session.id, identity_id=identity.id, email=identity.email
        )

    async def sign_out(self, session_id: str) -> None:
        stmt = (
            update(AuthSessionModel)
            .where(AuthSessionModel.id == session_id, AuthSessionModel.revoked_at.is_(None))
            .values(revoked_at=datetime.now(UTC))
        )
        async with store_guard(self.session, "session_revoke"):
            await self.session.execute(stmt)
            await self.session.commit()

    async def is_session_active(self, session_id: str) -> bool:
        stmt = select(AuthSessionModel.revoked_at).where(AuthSessionModel.id == session_id)
        async with store_guard(self.session, "session_get"):
            row = (await self.session.execute(stmt)).first()
        return row is not None and row.revoked_at is None

    async def reset_password(self, email: str) -> str | None:
        """Issue a reset token for a known email; unknown emails yield ``None``."""
        identity = await self._get_by_email(email)
        if identity is None:
            return None
        return create_password_reset_token(
            identity.id,
            email=identity.email,
            fingerprint=credential_fingerprint(identity.hashed_password),
        )

    async def verify_credentials(self, identity_id: str, password: str) -> bool:
        identity = await self._get(identity_id)
        return identity is not None and verify_password(password, identity.hashed_password)

    async def update_password(self, identity_id: str, new_password: str) -> None:
        identity = await self._get(identity_id)
        if identity is None:
            raise NotFound(f"Identity {identity_id} not found")

        async with store_guard(self.session, "identity_update_password"):
            identity.hashed_password = hash_password(new_password)
            await self.session.execute(_revoke_sessions(identity_id))
            await self.session.commit()

    async def complete_password_reset(
        self, identity_id: str, fingerprint: str, new_password: str
    ) -> None:
        """Replace the password if it is still the one ``fingerprint`` was taken from.

        The write is conditional on the stored hash, so a reset token is spent by
        its first use and by any other password change.
        """
        identity = await self._get(identity_id)
        if identity is None:
            raise NotFound(f"Identity {identity_id} not found")
        current_hash = identity.hashed_password
        if credential_fingerprint(current_hash) != fingerprint:
            await logger.awarning("password_reset_token_spent", identity_id=identity_id)
            raise InvalidCredentials("Reset token has already been used")

        stmt = (
            update(IdentityModel)
            .where(
                IdentityModel.id == identity_id,
                IdentityModel.hashed_password == current_hash,
            )
            .values(hashed_password=hash_password(new_password))
        )
        async with store_guard(self.session, "identity_reset_password"):
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                await self.session.rollback()
                raise InvalidCredentials("Reset token has already been used")
            await self.session.execute(_revoke_sessions(identity_id))
            await self.session.commit()

    async def _get(self, identity_id: str) -> IdentityModel | None:
        stmt = select(IdentityModel).where(IdentityModel.id == identity_id)
        async with store_guard(self.session, "identity_get"):
            return await self.session.scalar(stmt)

    async def _get_by_email(self, email: str) -> IdentityModel | None:
        stmt = select(IdentityModel).where(IdentityModel.email == email.lower())
        async with store_guard(self.session, "identity_get_by_email"):
            return await self.session.scalar(stmt)


def _revoke_sessions(identity_id: str) -> Update:
    return (
        update(AuthSessionModel)
        .where(
            AuthSessionModel.identity_id == identity_id,
            AuthSessionModel.revoked_at.is_(None),
        )
        .values(revoked_at=datetime.now(UTC))
    )


def _json_safe(metadata: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.isoformat() if hasattr(value, "isoformat") else value
        for key, value in metadata.items()
    }
