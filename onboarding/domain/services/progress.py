"""
Progress tracker for per-employee onboarding status.

- One progress row per employee, created lazily and idempotently
- Status derived from the set of submitted catalog forms
- Privileged aggregate view across employees with filters and pagination
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime

import structlog
from onboarding.core.config import get_settings
from onboarding.domain.errors import NotFound, StoreError, ValidationError
from onboarding.domain.forms import FORM_CATALOG, FormTypeDescriptor
from onboarding.domain.models import (
    AccountFilter,
    EmployeeDetail,
    EmployeeOnboarding,
    OnboardingProgress,
    Page,
    Paged,
    User,
)
from onboarding.domain.policy import Action, enforce
from onboarding.infrastructure.db.models import (
    OnboardingProgressModel,
    OnboardingStatus,
    UserRole,
)
from onboarding.infrastructure.repositories import (
    AccountRepository,
    ProgressRepository,
    SubmissionRepository,
    UniqueViolation,
    to_account,
    to_progress,
    to_submission,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

# Bounded retries when a guarded status write loses to a concurrent writer.
STATUS_WRITE_ATTEMPTS = 3


class ProgressTracker:
    """Owns the onboarding progress record of each employee."""

    def __init__(
        self,
        session: AsyncSession,
        catalog: Mapping[str, FormTypeDescriptor] = FORM_CATALOG,
    ) -> None:
        self.session = session
        self.required_form_types = frozenset(catalog)
        self.accounts = AccountRepository(session)
        self.progress = ProgressRepository(session)
        self.submissions = SubmissionRepository(session)

    async def ensure_progress(self, employee_id: str) -> OnboardingProgress:
        """Return the employee's progress record, creating it on first access."""
        return to_progress(await self._ensure(employee_id))

    async def _ensure(self, employee_id: str) -> OnboardingProgressModel:
        existing = await self.progress.get(employee_id)
        if existing is not None:
            return existing

        account = await self.accounts.get(employee_id)
        if account is None or account.role != UserRole.EMPLOYEE:
            raise NotFound(f"Employee {employee_id} not found")

        try:
            created = await self.progress.insert(employee_id, started_at=datetime.now(UTC))
        except UniqueViolation:
            # A concurrent caller created it first; theirs is the record.
            winner = await self.progress.get(employee_id)
            if winner is None:
                raise StoreError("Progress record conflict could not be resolved") from None
            await logger.ainfo("progress_create_conflict", employee_id=employee_id)
            return winner

        await logger.ainfo("progress_created", employee_id=employee_id)
        return created

    async def recompute_status(self, employee_id: str) -> OnboardingProgress:
        """Derive the aggregate status from submitted forms and persist it if it changed.

        Status never moves backwards here; only ``override_status`` can do that.
        """
        progress = await self._ensure(employee_id)

        for _ in range(STATUS_WRITE_ATTEMPTS):
            submitted = await self.submissions.submitted_form_types(employee_id)
            computed = OnboardingStatus.from_counts(
                len(submitted & self.required_form_types), len(self.required_form_types)
            )
            current = progress.onboarding_status

            if computed == current:
                return to_progress(progress)
            if computed.rank < current.rank:
                await logger.ainfo(
                    "progress_regression_ignored",
                    employee_id=employee_id,
                    current=current.value,
                    computed=computed.value,
                )
                return to_progress(progress)

            written = await self.progress.set_status(
                employee_id, status=computed, expected=current, at=datetime.now(UTC)
            )
            refreshed = await self.progress.get(employee_id)
            if refreshed is None:
                raise NotFound(f"Progress for employee {employee_id} not found")
            progress = refreshed
            if written:
                await logger.ainfo(
                    "progress_status_changed",
                    employee_id=employee_id,
                    previous=current.value,
                    status=computed.value,
                    submitted=len(submitted),
                    required=len(self.required_form_types),
                )
                return to_progress(progress)

        return to_progress(progress)

    async def get_progress(self, actor: User, employee_id: str | None = None) -> OnboardingProgress:
        target = employee_id or actor.user_id
        enforce(actor, target, Action.READ_PROGRESS)
        return await self.ensure_progress(target)

    async def override_status(
        self, actor: User, employee_id: str, status: str
    ) -> OnboardingProgress:
        """Set a status explicitly (admin only), including moving it backwards."""
        enforce(actor, employee_id, Action.OVERRIDE_STATUS)
        new_status = parse_status(status)
        progress = await self._ensure(employee_id)

        await self.progress.set_status(
            employee_id, status=new_status, expected=None, at=datetime.now(UTC)
        )
        await logger.ainfo(
            "progress_status_overridden",
            employee_id=employee_id,
            actor_id=actor.user_id,
            previous=progress.onboarding_status.value,
            status=new_status.value,
        )
        return await self.ensure_progress(employee_id)

    async def get_aggregate_view(
        self,
        actor: User,
        filters: AccountFilter,
        page: Page,
        *,
        default_role: str | None = UserRole.EMPLOYEE.value,
    ) -> Paged[EmployeeOnboarding]:
        """List accounts with their onboarding progress for managers and admins.

        Without a role filter only ``default_role`` accounts are listed; pass
        ``None`` to list every role.
        """
        enforce(actor, None, Action.LIST_ALL)
        settings = get_settings()
        page = Page.create(page.page, page.page_size, max_page_size=settings.max_page_size)
        filters = AccountFilter(
            role=parse_role(filters.role).value if filters.role else default_role,
            department=filters.department or None,
            onboarding_status=(
                parse_status(filters.onboarding_status).value
                if filters.onboarding_status
                else None
            ),
        )

        rows, total = await self.accounts.search(filters, page)
        return Paged(
            items=[
                EmployeeOnboarding(
                    account=to_account(account),
                    progress=to_progress(progress) if progress is not None else None,
                )
                for account, progress in rows
            ],
            page=page.page,
            page_size=page.page_size,
            total=total,
        )

    async def get_employee_detail(self, actor: User, employee_id: str) -> EmployeeDetail:
        enforce(actor, employee_id, Action.READ_SUBMISSIONS)
        account = await self.accounts.get(employee_id)
        if account is None:
            raise NotFound(f"Employee {employee_id} not found")

        progress = await self.ensure_progress(employee_id)
        forms = {
            submission.form_type: to_submission(submission)
            for submission in await self.submissions.list_for_employee(employee_id)
        }
        return EmployeeDetail(
            account=to_account(account),
            progress=progress,
            forms=forms,
            completed_count=len(self.required_form_types.intersection(forms)),
            required_count=len(self.required_form_types),
        )


def parse_status(value: str) -> OnboardingStatus:
    try:
        return OnboardingStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in OnboardingStatus)
        raise ValidationError("status", f'"status" must be one of {allowed}') from None


def parse_role(value: str) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        allowed = ", ".join(role.value for role in UserRole)
        raise ValidationError("role", f'"role" must be one of {allowed}') from None
