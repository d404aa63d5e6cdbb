"""Domain services."""

from onboarding.domain.services.accounts import AccountService
from onboarding.domain.services.progress import ProgressTracker
from onboarding.domain.services.provisioning import IdentityProvisioner
from onboarding.domain.services.sessions import SessionService, SessionTokens, SignInResult
from onboarding.domain.services.submissions import SubmissionLedger

__all__ = [
    "AccountService",
    "IdentityProvisioner",
    "ProgressTracker",
    "SessionService",
    "SessionTokens",
    "SignInResult",
    "SubmissionLedger",
]
