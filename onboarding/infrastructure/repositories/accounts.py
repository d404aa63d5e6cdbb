from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from onboarding.domain.models import Account, AccountFilter, OnboardingProgress, Page
from onboarding.infrastructure.db.models import (
    AccountModel,
    OnboardingProgressModel,
    OnboardingStatus,
    UserRole,
)
from onboarding.infrastructure.repositories.base import store_guard
from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession


def to_account(model: AccountModel) -> Account:
    return Account(
        id=model.id,
        email=model.email,
        role=model.role.value,
        full_name=model.full_name,
        employee_id=model.employee_id,
        department=model.department,
        position=model.position,
        start_date=model.start_date,
        phone=model.phone,
        is_active=model.is_active,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def to_progress(model: OnboardingProgressModel) -> OnboardingProgress:
    return OnboardingProgress(
        employee_id=model.employee_id,
        started_at=model.started_at,
        onboarding_status=model.onboarding_status.value,
        last_updated_at=model.last_updated_at,
    )


class AccountRepository:
    """Row-level access to the ``users`` profile table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, account_id: str, *, refresh: bool = False) -> AccountModel | None:
        stmt = select(AccountModel).where(AccountModel.id == account_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        async with store_guard(self.session, "account_get"):
            return await self.session.scalar(stmt)

    async def update(self, account_id: str, values: dict[str, Any]) -> int:
        """Update a profile row; returns the number of rows affected."""
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .values(**values, updated_at=datetime.now(UTC))
        )
        async with store_guard(self.session, "account_update"):
            result = await self.session.execute(stmt)
            await self.session.commit()
        return result.rowcount or 0

    async def insert(self, values: dict[str, Any]) -> AccountModel:
        """Insert a profile row. Raises ``UniqueViolation`` if it already exists."""
        now = datetime.now(UTC)
        account = AccountModel(**values, created_at=now, updated_at=now)
        async with store_guard(self.session, "account_insert"):
            self.session.add(account)
            await self.session.commit()
            await self.session.refresh(account)
        return account

    async def search(
        self, filters: AccountFilter, page: Page
    ) -> tuple[list[tuple[AccountModel, OnboardingProgressModel | None]], int]:
        """Return one page of accounts joined with their progress rows, plus the total."""
        stmt = self._filtered(
            select(AccountModel, OnboardingProgressModel).outerjoin(
                OnboardingProgressModel,
                OnboardingProgressModel.employee_id == AccountModel.id,
            ),
            filters,
        )
        count_stmt = self._filtered(
            select(func.count(AccountModel.id)).outerjoin(
                OnboardingProgressModel,
                OnboardingProgressModel.employee_id == AccountModel.id,
            ),
            filters,
        )
        stmt = stmt.order_by(AccountModel.created_at, AccountModel.id).offset(page.offset).limit(
            page.page_size
        )
        async with store_guard(self.session, "account_list"):
            rows = (await self.session.execute(stmt)).all()
            total = await self.session.scalar(count_stmt)
        return [(account, progress) for account, progress in rows], int(total or 0)

    @staticmethod
    def _filtered(stmt: Select, filters: AccountFilter) -> Select:
        if filters.role:
            stmt = stmt.where(AccountModel.role == UserRole(filters.role))
        if filters.department:
            stmt = stmt.where(AccountModel.department == filters.department)
        if filters.onboarding_status:
            status = OnboardingStatus(filters.onboarding_status)
            if status is OnboardingStatus.PENDING:
                # Employees who never opened onboarding have no progress row yet.
                stmt = stmt.where(
                    (OnboardingProgressModel.onboarding_status == status)
                    | (
                        (OnboardingProgressModel.id.is_(None))
                        & (AccountModel.role == UserRole.EMPLOYEE)
                    )
                )
            else:
                stmt = stmt.where(OnboardingProgressModel.onboarding_status == status)
        return stmt
