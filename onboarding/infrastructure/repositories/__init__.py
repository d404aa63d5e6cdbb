"""Persistence helpers shared by the domain services."""

from onboarding.infrastructure.repositories.accounts import (
    AccountRepository,
    to_account,
    to_progress,
)
from onboarding.infrastructure.repositories.base import UniqueViolation, store_guard
from onboarding.infrastructure.repositories.progress import ProgressRepository
from onboarding.infrastructure.repositories.submissions import (
    SubmissionRepository,
    to_submission,
)

__all__ = [
    "AccountRepository",
    "ProgressRepository",
    "SubmissionRepository",
    "UniqueViolation",
    "store_guard",
    "to_account",
    "to_progress",
    "to_submission",
]
