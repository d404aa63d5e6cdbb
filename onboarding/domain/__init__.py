"""Domain layer: catalog, policy, models and services of the onboarding core."""

from onboarding.domain.models import (
    Account,
    EmployeeDetail,
    EmployeeOnboarding,
    FormSubmission,
    OnboardingProgress,
    User,
)

__all__ = [
    "Account",
    "EmployeeDetail",
    "EmployeeOnboarding",
    "FormSubmission",
    "OnboardingProgress",
    "User",
]
