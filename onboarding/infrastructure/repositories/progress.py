from __future__ import annotations

from datetime import datetime

from onboarding.infrastructure.db.models import OnboardingProgressModel, OnboardingStatus
from onboarding.infrastructure.repositories.base import store_guard
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession


class ProgressRepository:
    """Row-level access to ``onboarding_progress``."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, employee_id: str) -> OnboardingProgressModel | None:
        stmt = (
            select(OnboardingProgressModel)
            .where(OnboardingProgressModel.employee_id == employee_id)
            .execution_options(populate_existing=True)
        )
        async with store_guard(self.session, "progress_get"):
            return await self.session.scalar(stmt)

    async def insert(self, employee_id: str, *, started_at: datetime) -> OnboardingProgressModel:
        """Create the progress row. Raises ``UniqueViolation`` if one already exists."""
        progress = OnboardingProgressModel(
            employee_id=employee_id,
            started_at=started_at,
            onboarding_status=OnboardingStatus.PENDING,
            last_updated_at=started_at,
        )
        async with store_guard(self.session, "progress_insert"):
            self.session.add(progress)
            await self.session.commit()
            await self.session.refresh(progress)
        return progress

    async def set_status(
        self,
        employee_id: str,
        *,
        status: OnboardingStatus,
        expected: OnboardingStatus | None,
        at: datetime,
    ) -> bool:
        """Write a new status, optionally guarded by the status last read.

        Returns False when ``expected`` no longer matches the stored status,
        meaning a concurrent writer got there first.
        """
        stmt = update(OnboardingProgressModel).where(
            OnboardingProgressModel.employee_id == employee_id
        )
        if expected is not None:
            stmt = stmt.where(OnboardingProgressModel.onboarding_status == expected)
        stmt = stmt.values(onboarding_status=status, last_updated_at=at).execution_options(
            synchronize_session=False
        )
        async with store_guard(self.session, "progress_set_status"):
            result = await self.session.execute(stmt)
            await self.session.commit()
        return bool(result.rowcount)
