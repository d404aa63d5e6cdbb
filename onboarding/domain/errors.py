"""Typed errors raised by the onboarding core.

Every error carries a stable ``kind`` that the HTTP layer maps to a status
code, and a human-readable message. Extra keyword details are kept on
``details`` for logging and structured responses.
"""

from __future__ import annotations

from typing import Any


class OnboardingError(Exception):
    """Base exception for all onboarding domain errors."""

    kind = "internal"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(OnboardingError):
    """Raised when input values are missing or malformed."""

    kind = "validation"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, field=field)
        self.field = field


class IdentityConflict(OnboardingError):
    """Raised when an email is already registered with the identity store."""

    kind = "identity_conflict"


class IdentityProviderError(OnboardingError):
    """Raised when the identity store fails for a reason other than a conflict."""

    kind = "identity_provider"


class InvalidCredentials(OnboardingError):
    """Raised when an email/password pair or a reset token is not accepted."""

    kind = "invalid_credentials"


class DuplicateSubmission(OnboardingError):
    """Raised when a form type was already submitted for an employee."""

    kind = "duplicate_submission"


class NotFound(OnboardingError):
    """Raised when an account, progress record or submission does not exist."""

    kind = "not_found"


class AuthorizationDenied(OnboardingError):
    """Raised when the caller's role or ownership does not permit an action."""

    kind = "forbidden"


class ProvisioningError(OnboardingError):
    """Raised when a dependent service fails during signup.

    The identity created before the failure is left in place for operator
    reconciliation.
    """

    kind = "provisioning"


class ProvisioningTimeout(ProvisioningError):
    """Raised when profile materialization does not settle within the wait cap."""

    kind = "provisioning_timeout"


class StoreError(OnboardingError):
    """Raised for backing-store failures other than uniqueness violations."""

    kind = "store"


INTERNAL_KINDS = frozenset(
    {
        IdentityProviderError.kind,
        ProvisioningError.kind,
        ProvisioningTimeout.kind,
        StoreError.kind,
        OnboardingError.kind,
    }
)

__all__ = [
    "AuthorizationDenied",
    "DuplicateSubmission",
    "INTERNAL_KINDS",
    "IdentityConflict",
    "IdentityProviderError",
    "InvalidCredentials",
    "NotFound",
    "OnboardingError",
    "ProvisioningError",
    "ProvisioningTimeout",
    "StoreError",
    "ValidationError",
]
