from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

from onboarding.domain.models import FormSubmission, Page, SubmissionFilter
from onboarding.infrastructure.db.models import FormSubmissionAmendment, FormSubmissionModel
from onboarding.infrastructure.repositories.base import store_guard
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


def to_submission(model: FormSubmissionModel) -> FormSubmission:
    return FormSubmission(
        id=model.id,
        employee_id=model.employee_id,
        form_type=model.form_type,
        fields=dict(model.fields),
        electronic_signature=model.electronic_signature,
        signature_date=model.signature_date,
        submitted_at=model.submitted_at,
        amended_at=model.amended_at,
    )


class SubmissionRepository:
    """Row-level access to ``form_submissions`` and their amendment audit trail."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(
        self,
        *,
        employee_id: str,
        form_type: str,
        fields: dict[str, Any],
        signature: str,
        signature_date: date,
    ) -> FormSubmissionModel:
        """Insert a submission. Raises ``UniqueViolation`` for a repeated form type."""
        submission = FormSubmissionModel(
            employee_id=employee_id,
            form_type=form_type,
            fields=fields,
            electronic_signature=signature,
            signature_date=signature_date,
            submitted_at=datetime.now(UTC),
        )
        async with store_guard(self.session, "submission_insert"):
            self.session.add(submission)
            await self.session.commit()
            await self.session.refresh(submission)
        return submission

    async def get(self, employee_id: str, form_type: str) -> FormSubmissionModel | None:
        stmt = (
            select(FormSubmissionModel)
            .where(
                FormSubmissionModel.employee_id == employee_id,
                FormSubmissionModel.form_type == form_type,
            )
            .execution_options(populate_existing=True)
        )
        async with store_guard(self.session, "submission_get"):
            return await self.session.scalar(stmt)

    async def list_for_employee(self, employee_id: str) -> list[FormSubmissionModel]:
        stmt = (
            select(FormSubmissionModel)
            .where(FormSubmissionModel.employee_id == employee_id)
            .order_by(FormSubmissionModel.submitted_at)
        )
        async with store_guard(self.session, "submission_list_for_employee"):
            return list((await self.session.execute(stmt)).scalars().all())

    async def submitted_form_types(self, employee_id: str) -> set[str]:
        stmt = select(FormSubmissionModel.form_type).where(
            FormSubmissionModel.employee_id == employee_id
        )
        async with store_guard(self.session, "submission_form_types"):
            return set((await self.session.execute(stmt)).scalars().all())

    async def search(
        self, filters: SubmissionFilter, page: Page
    ) -> tuple[list[FormSubmissionModel], int]:
        stmt = self._filtered(select(FormSubmissionModel), filters)
        count_stmt = self._filtered(select(func.count(FormSubmissionModel.id)), filters)
        stmt = (
            stmt.order_by(FormSubmissionModel.submitted_at.desc(), FormSubmissionModel.id)
            .offset(page.offset)
            .limit(page.page_size)
        )
        async with store_guard(self.session, "submission_search"):
            rows = list((await self.session.execute(stmt)).scalars().all())
            total = await self.session.scalar(count_stmt)
        return rows, int(total or 0)

    async def amend(
        self,
        submission: FormSubmissionModel,
        *,
        amended_by: str,
        reason: str,
        fields: dict[str, Any],
        signature: str,
        signature_date: date,
    ) -> FormSubmissionModel:
        """Replace a submission's fields, recording the superseded version."""
        now = datetime.now(UTC)
        audit = FormSubmissionAmendment(
            submission_id=submission.id,
            amended_by=amended_by,
            reason=reason,
            previous_fields=dict(submission.fields),
            previous_signature=submission.electronic_signature,
            previous_signature_date=submission.signature_date,
            amended_at=now,
        )
        async with store_guard(self.session, "submission_amend"):
            self.session.add(audit)
            submission.fields = fields
            submission.electronic_signature = signature
            submission.signature_date = signature_date
            submission.amended_at = now
            await self.session.commit()
            await self.session.refresh(submission)
        return submission

    async def amendment_count(self, submission_id: str) -> int:
        stmt = select(func.count(FormSubmissionAmendment.id)).where(
            FormSubmissionAmendment.submission_id == submission_id
        )
        async with store_guard(self.session, "submission_amendment_count"):
            return int(await self.session.scalar(stmt) or 0)

    @staticmethod
    def _filtered(stmt: Select, filters: SubmissionFilter) -> Select:
        if filters.form_type:
            stmt = stmt.where(FormSubmissionModel.form_type == filters.form_type)
        if filters.employee_id:
            stmt = stmt.where(FormSubmissionModel.employee_id == filters.employee_id)
        if filters.submitted_from:
            stmt = stmt.where(FormSubmissionModel.submitted_at >= filters.submitted_from)
        if filters.submitted_to:
            stmt = stmt.where(FormSubmissionModel.submitted_at <= filters.submitted_to)
        return stmt
