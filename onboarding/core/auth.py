from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt
from onboarding.core.config import get_settings

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
PASSWORD_RESET_TOKEN = "password_reset"


class TokenError(Exception):
    """Raised when a token cannot be decoded or validated."""


class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"

    @classmethod
    def contains(cls, value: str) -> bool:
        return value in {role.value for role in cls}

    @classmethod
    def privileged(cls) -> tuple[Role, ...]:
        return (cls.MANAGER, cls.ADMIN)


def create_access_token(
    subject: str,
    *,
    roles: Sequence[str],
    email: str | None = None,
    expires_delta: timedelta | None = None,
    session_id: str | None = None,
    token_type: str = ACCESS_TOKEN,
    claims: dict[str, Any] | None = None,
) -> str:
    """Generate a signed JWT access token."""
    settings = get_settings()

    invalid_roles = [role for role in roles if role not in settings.allowed_roles]
    if invalid_roles:
        joined_roles = ", ".join(invalid_roles)
        raise TokenError(f"Unsupported role(s): {joined_roles}")

    now = datetime.now(UTC)
    ttl = expires_delta or timedelta(seconds=settings.access_token_ttl_seconds)
    payload: dict[str, Any] = {
        "sub": subject,
        "roles": list(roles),
        "typ": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
        "iss": settings.app_name,
    }

    if email:
        payload["email"] = email
    if session_id:
        payload["sid"] = session_id
    if claims:
        payload.update(claims)

    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_password_reset_token(subject: str, *, email: str, fingerprint: str) -> str:
    """Generate a short-lived token that authorizes a single credential reset.

    ``fingerprint`` identifies the credential the token was issued against; once
    that credential changes the token no longer applies.
    """
    settings = get_settings()
    return create_access_token(
        subject,
        roles=[],
        email=email,
        expires_delta=timedelta(seconds=settings.password_reset_ttl_seconds),
        token_type=PASSWORD_RESET_TOKEN,
        claims={"pwf": fingerprint},
    )


def decode_access_token(token: str, *, expected_type: str = ACCESS_TOKEN) -> dict:
    """Decode and validate a JWT access token."""
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "roles", "exp"]},
        )
    except jwt.PyJWTError as exc:  # pragma: no cover - third-party raises numerous subclasses
        raise TokenError("Invalid token") from exc

    if payload.get("typ", ACCESS_TOKEN) != expected_type:
        raise TokenError("Unexpected token type")

    _ensure_roles(payload.get("roles", []))
    return payload


def _ensure_roles(roles: Iterable[str]) -> None:
    for role in roles:
        if not Role.contains(role):
            raise TokenError(f"Unsupported role: {role}")
