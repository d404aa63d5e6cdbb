"""Account and profile management."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

import structlog
from onboarding.core.auth import Role
from onboarding.domain.errors import (
    AuthorizationDenied,
    NotFound,
    ProvisioningError,
    ValidationError,
)
from onboarding.domain.models import (
    AccountFilter,
    EmployeeOnboarding,
    Page,
    Paged,
    User,
)
from onboarding.domain.policy import Action, enforce
from onboarding.domain.services.progress import ProgressTracker, parse_role
from onboarding.infrastructure.db.models import AccountModel, UserRole
from onboarding.infrastructure.employee_ids import (
    EmployeeIdGenerationError,
    EmployeeIdGenerator,
    SequenceEmployeeIdGenerator,
)
from onboarding.infrastructure.repositories import (
    AccountRepository,
    ProgressRepository,
    to_account,
    to_progress,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SELF_EDITABLE_FIELDS = frozenset({"full_name", "department", "position", "phone"})
ADMIN_EDITABLE_FIELDS = SELF_EDITABLE_FIELDS | {"role", "is_active", "start_date"}


class AccountService:
    """Reads and updates profile records on behalf of an authenticated caller."""

    def __init__(
        self,
        session: AsyncSession,
        progress_tracker: ProgressTracker | None = None,
        id_generator: EmployeeIdGenerator | None = None,
    ) -> None:
        self.session = session
        self.id_generator = id_generator or SequenceEmployeeIdGenerator(session)
        self.accounts = AccountRepository(session)
        self.progress = ProgressRepository(session)
        self.progress_tracker = progress_tracker or ProgressTracker(session)

    async def resolve_user(self, user_id: str, *, session_id: str | None = None) -> User:
        """Build the caller identity from the stored profile.

        Raises ``NotFound`` for unknown accounts and ``AuthorizationDenied``
        for deactivated ones.
        """
        account = await self.accounts.get(user_id, refresh=True)
        if account is None:
            raise NotFound(f"Account {user_id} not found")
        if not account.is_active:
            raise AuthorizationDenied("Account is deactivated")
        return User(
            user_id=account.id,
            role=Role(account.role.value),
            email=account.email,
            full_name=account.full_name,
            employee_id=account.employee_id,
            department=account.department,
            is_active=account.is_active,
            session_id=session_id,
        )

    async def get_profile(self, actor: User) -> EmployeeOnboarding:
        """The caller's own account, with onboarding progress for employees."""
        return await self.get_account(actor, actor.user_id)

    async def get_account(self, actor: User, account_id: str) -> EmployeeOnboarding:
        enforce(actor, account_id, Action.READ_ACCOUNT)
        account = await self._require(account_id)
        return await self._with_progress(account)

    async def update_own_profile(
        self, actor: User, updates: Mapping[str, Any]
    ) -> EmployeeOnboarding:
        enforce(actor, actor.user_id, Action.UPDATE_PROFILE)
        values = _clean_updates(updates, SELF_EDITABLE_FIELDS)
        await self._require(actor.user_id)

        if values:
            await self.accounts.update(actor.user_id, values)
            await logger.ainfo(
                "profile_updated", account_id=actor.user_id, changed=sorted(values)
            )
        return await self._with_progress(await self._require(actor.user_id, refresh=True))

    async def list_accounts(
        self, actor: User, filters: AccountFilter, page: Page
    ) -> Paged[EmployeeOnboarding]:
        """Accounts of every role, optionally filtered, for managers and admins."""
        return await self.progress_tracker.get_aggregate_view(
            actor, filters, page, default_role=None
        )

    async def admin_update_account(
        self, actor: User, account_id: str, updates: Mapping[str, Any]
    ) -> EmployeeOnboarding:
        """Change privileged fields of any account (admin only).

        ``id``, ``email``, ``employee_id`` and timestamps are never writable.
        Promoting an account to ``employee`` allocates its employee ID; an
        employee cannot be moved to another role because their onboarding
        records are keyed to it.
        """
        enforce(actor, account_id, Action.MANAGE_ACCOUNT)
        values = _clean_updates(updates, ADMIN_EDITABLE_FIELDS)
        if "role" in values:
            values["role"] = parse_role(values["role"])
        if "is_active" in values and not isinstance(values["is_active"], bool):
            raise ValidationError("is_active", '"is_active" must be a boolean')

        account = await self._require(account_id)
        if "role" in values and values["role"] != account.role:
            values.update(await self._role_change(account, values["role"]))
        if values:
            await self.accounts.update(account_id, values)
            await logger.ainfo(
                "account_updated",
                account_id=account_id,
                actor_id=actor.user_id,
                changed=sorted(values),
            )
        account = await self._require(account_id, refresh=True)
        return await self._with_progress(account)

    async def deactivate_account(self, actor: User, account_id: str) -> EmployeeOnboarding:
        """Mark an account inactive; records are never deleted."""
        enforce(actor, account_id, Action.DEACTIVATE_ACCOUNT)
        if account_id == actor.user_id:
            raise ValidationError("account_id", "Admins cannot deactivate their own account")

        account = await self._require(account_id)
        if account.is_active:
            await self.accounts.update(account_id, {"is_active": False})
            await logger.ainfo(
                "account_deactivated", account_id=account_id, actor_id=actor.user_id
            )
        account = await self._require(account_id, refresh=True)
        return await self._with_progress(account)

    async def _role_change(self, account: AccountModel, role: UserRole) -> dict[str, Any]:
        if account.role == UserRole.EMPLOYEE:
            raise ValidationError(
                "role", "Employee accounts cannot be moved to another role"
            )
        if role != UserRole.EMPLOYEE or account.employee_id is not None:
            return {}
        try:
            employee_id = await self.id_generator.next()
        except EmployeeIdGenerationError as exc:
            await logger.aerror("role_change_id_failed", account_id=account.id)
            raise ProvisioningError("Could not allocate an employee ID") from exc
        return {"employee_id": employee_id}

    async def _require(self, account_id: str, *, refresh: bool = False) -> AccountModel:
        account = await self.accounts.get(account_id, refresh=refresh)
        if account is None:
            raise NotFound(f"Account {account_id} not found")
        return account

    async def _with_progress(self, account: AccountModel) -> EmployeeOnboarding:
        progress = None
        if account.role == UserRole.EMPLOYEE:
            progress = await self.progress_tracker.ensure_progress(account.id)
        else:
            existing = await self.progress.get(account.id)
            progress = to_progress(existing) if existing is not None else None
        return EmployeeOnboarding(account=to_account(account), progress=progress)


def _clean_updates(updates: Mapping[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise ValidationError(unknown[0], f'"{unknown[0]}" cannot be updated')

    values = dict(updates)
    start_date = values.get("start_date")
    if isinstance(start_date, str):
        try:
            values["start_date"] = date.fromisoformat(start_date)
        except ValueError:
            raise ValidationError("start_date", '"start_date" must be an ISO date') from None
    return values
