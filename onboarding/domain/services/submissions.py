"""
Submission ledger for onboarding forms.

- At most one submission per (employee, form type); repeats are rejected
- Amendments are a separate, audited action
- Every write recomputes the employee's aggregate status before returning
"""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog
from onboarding.core.config import get_settings
from onboarding.domain.errors import DuplicateSubmission, NotFound, ValidationError
from onboarding.domain.forms import FormTypeDescriptor, get_form_type
from onboarding.domain.models import FormSubmission, Page, Paged, SubmissionFilter, User
from onboarding.domain.policy import Action, enforce
from onboarding.domain.services.progress import ProgressTracker
from onboarding.infrastructure.db.models import UserRole
from onboarding.infrastructure.repositories import (
    AccountRepository,
    SubmissionRepository,
    UniqueViolation,
    to_submission,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class SubmissionLedger:
    """Records signed onboarding forms and keeps progress in step with them."""

    def __init__(
        self,
        session: AsyncSession,
        progress_tracker: ProgressTracker | None = None,
    ) -> None:
        self.session = session
        self.accounts = AccountRepository(session)
        self.submissions = SubmissionRepository(session)
        self.progress_tracker = progress_tracker or ProgressTracker(session)

    async def submit(
        self,
        actor: User,
        employee_id: str,
        form_type: str,
        fields: dict[str, Any],
    ) -> FormSubmission:
        """Record a form for an employee and recompute their onboarding status.

        Raises:
            ValidationError: unknown form type or fields that fail its schema
            AuthorizationDenied: the actor may not write this employee's forms
            NotFound: no such employee
            DuplicateSubmission: the form type was already submitted
        """
        descriptor = get_form_type(form_type)
        enforce(actor, employee_id, Action.WRITE_SUBMISSION)
        await self._require_employee(employee_id)

        if await self.submissions.get(employee_id, form_type) is not None:
            await self._log_duplicate(employee_id, form_type)
            raise _duplicate(employee_id, form_type)

        normalized = descriptor.validate(fields)
        signature, signature_date = _signature_of(descriptor, normalized)

        try:
            submission = await self.submissions.insert(
                employee_id=employee_id,
                form_type=form_type,
                fields=normalized,
                signature=signature,
                signature_date=signature_date,
            )
        except UniqueViolation as exc:
            await self._log_duplicate(employee_id, form_type)
            raise _duplicate(employee_id, form_type) from exc

        await logger.ainfo(
            "submission_recorded",
            employee_id=employee_id,
            form_type=form_type,
            submission_id=submission.id,
            actor_id=actor.user_id,
        )
        await self.progress_tracker.recompute_status(employee_id)
        return to_submission(submission)

    async def amend(
        self,
        actor: User,
        employee_id: str,
        form_type: str,
        fields: dict[str, Any],
        reason: str,
    ) -> FormSubmission:
        """Supersede a submitted form, keeping the replaced version in the audit trail."""
        descriptor = get_form_type(form_type)
        enforce(actor, employee_id, Action.AMEND_SUBMISSION)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("reason", '"reason" is required')

        await self._require_employee(employee_id)
        submission = await self.submissions.get(employee_id, form_type)
        if submission is None:
            raise NotFound(f"No {form_type} submission for employee {employee_id}")

        normalized = descriptor.validate(fields)
        signature, signature_date = _signature_of(descriptor, normalized)
        submission = await self.submissions.amend(
            submission,
            amended_by=actor.user_id,
            reason=reason,
            fields=normalized,
            signature=signature,
            signature_date=signature_date,
        )

        await logger.ainfo(
            "submission_amended",
            employee_id=employee_id,
            form_type=form_type,
            submission_id=submission.id,
            actor_id=actor.user_id,
        )
        await self.progress_tracker.recompute_status(employee_id)
        return to_submission(submission)

    async def list_for_employee(self, actor: User, employee_id: str) -> dict[str, FormSubmission]:
        """Submitted forms keyed by form type; forms not yet submitted are omitted."""
        enforce(actor, employee_id, Action.READ_SUBMISSIONS)
        await self._require_employee(employee_id)
        return {
            submission.form_type: to_submission(submission)
            for submission in await self.submissions.list_for_employee(employee_id)
        }

    async def get_submission(
        self, actor: User, employee_id: str, form_type: str
    ) -> FormSubmission:
        get_form_type(form_type)
        enforce(actor, employee_id, Action.READ_SUBMISSIONS)
        await self._require_employee(employee_id)
        submission = await self.submissions.get(employee_id, form_type)
        if submission is None:
            raise NotFound(f"No {form_type} submission for employee {employee_id}")
        return to_submission(submission)

    async def list_all(
        self, actor: User, filters: SubmissionFilter, page: Page
    ) -> Paged[FormSubmission]:
        enforce(actor, None, Action.LIST_ALL)
        if filters.form_type:
            get_form_type(filters.form_type)
        if (
            filters.submitted_from
            and filters.submitted_to
            and filters.submitted_from > filters.submitted_to
        ):
            raise ValidationError(
                "submitted_from", '"submitted_from" must not be after "submitted_to"'
            )

        settings = get_settings()
        page = Page.create(page.page, page.page_size, max_page_size=settings.max_page_size)
        rows, total = await self.submissions.search(filters, page)
        return Paged(
            items=[to_submission(row) for row in rows],
            page=page.page,
            page_size=page.page_size,
            total=total,
        )

    async def _require_employee(self, employee_id: str) -> None:
        account = await self.accounts.get(employee_id)
        if account is None or account.role != UserRole.EMPLOYEE:
            raise NotFound(f"Employee {employee_id} not found")

    async def _log_duplicate(self, employee_id: str, form_type: str) -> None:
        await logger.awarning(
            "submission_duplicate_rejected", employee_id=employee_id, form_type=form_type
        )


def _duplicate(employee_id: str, form_type: str) -> DuplicateSubmission:
    return DuplicateSubmission(
        f"Form {form_type} was already submitted",
        employee_id=employee_id,
        form_type=form_type,
    )


def _signature_of(descriptor: FormTypeDescriptor, normalized: dict[str, Any]) -> tuple[str, date]:
    return (
        normalized[descriptor.signature_field],
        date.fromisoformat(normalized["signature_date"]),
    )
