"""
Identity provisioning for new accounts.

Signup spans two stores that are only eventually consistent: the identity
store creates credentials and, as a side effect, a baseline profile row that
may not exist yet when ``create_identity`` returns. The provisioner waits for
that row with bounded backoff, then writes the full profile as an upsert
(update, falling back to insert; an insert that loses to the baseline row
retries the update). The whole wait-and-write step is capped by
``profile_wait_timeout_seconds``.

Failures after the identity exists leave it in place and are logged as
``provisioning_orphaned_identity`` for operator reconciliation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

import structlog
from onboarding.core.auth import Role
from onboarding.core.config import Settings, get_settings
from onboarding.domain.errors import (
    ProvisioningError,
    ProvisioningTimeout,
    StoreError,
    ValidationError,
)
from onboarding.domain.models import ProvisionedAccount, User
from onboarding.domain.policy import Action, enforce
from onboarding.domain.services.progress import ProgressTracker
from onboarding.infrastructure.db.models import AccountModel, UserRole
from onboarding.infrastructure.employee_ids import EmployeeIdGenerationError, EmployeeIdGenerator
from onboarding.infrastructure.identity import IdentityStore
from onboarding.infrastructure.repositories import AccountRepository, UniqueViolation, to_account
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

PROFILE_FIELDS = ("full_name", "department", "position", "phone", "start_date")

EMPLOYEE_SIGNUP_ROLES = (Role.EMPLOYEE.value,)
PRIVILEGED_SIGNUP_ROLES = tuple(role.value for role in Role.privileged())

# Update/insert rounds before the upsert is declared non-convergent.
UPSERT_ATTEMPTS = 3


class IdentityProvisioner:
    """Creates an identity, its profile record and (for employees) progress tracking."""

    def __init__(
        self,
        session: AsyncSession,
        identity_store: IdentityStore,
        id_generator: EmployeeIdGenerator,
        progress_tracker: ProgressTracker | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.session = session
        self.identity_store = identity_store
        self.id_generator = id_generator
        self.progress_tracker = progress_tracker or ProgressTracker(session)
        self.accounts = AccountRepository(session)
        self.settings = settings or get_settings()

    async def signup_employee(
        self, email: str, password: str, profile_fields: Mapping[str, Any] | None = None
    ) -> ProvisionedAccount:
        """Self-service signup; the role is always ``employee``."""
        return await self.provision(
            email,
            password,
            Role.EMPLOYEE.value,
            profile_fields,
            allowed_roles=EMPLOYEE_SIGNUP_ROLES,
        )

    async def signup_privileged(
        self,
        actor: User,
        email: str,
        password: str,
        role: str,
        profile_fields: Mapping[str, Any] | None = None,
    ) -> ProvisionedAccount:
        """Admin-initiated signup of a manager or admin account."""
        enforce(actor, None, Action.PROVISION_PRIVILEGED)
        return await self.provision(
            email, password, role, profile_fields, allowed_roles=PRIVILEGED_SIGNUP_ROLES
        )

    async def provision(
        self,
        email: str,
        password: str,
        role: str,
        profile_fields: Mapping[str, Any] | None = None,
        *,
        allowed_roles: Iterable[str],
    ) -> ProvisionedAccount:
        """Create an identity plus its complete profile and return the persisted account.

        Raises:
            ValidationError: role not allowed here, or unknown profile fields
            IdentityConflict: the email is already registered
            IdentityProviderError: the identity store failed
            ProvisioningError: a later step failed; the identity is kept
            ProvisioningTimeout: the profile did not settle within the wait cap
        """
        allowed = tuple(allowed_roles)
        if role not in allowed:
            raise ValidationError("role", f'"role" must be one of {", ".join(allowed)}')
        profile = _profile_values(profile_fields or {})

        await logger.ainfo("provision_started", email=email.lower(), role=role)
        identity = await self.identity_store.create_identity(
            email, password, {**profile, "role": role}
        )

        values: dict[str, Any] = {**profile, "email": identity.email, "role": UserRole(role)}
        if role == Role.EMPLOYEE.value:
            try:
                values["employee_id"] = await self.id_generator.next()
            except EmployeeIdGenerationError as exc:
                await self._log_orphan(identity.id, "employee_id_unavailable")
                raise ProvisioningError(
                    "Could not assign an employee ID", account_id=identity.id
                ) from exc

        try:
            async with asyncio.timeout(self.settings.profile_wait_timeout_seconds):
                account = await self._upsert_profile(identity.id, values)
        except TimeoutError as exc:
            await self._log_orphan(identity.id, "profile_wait_timeout")
            raise ProvisioningTimeout(
                "Profile record was not ready in time", account_id=identity.id
            ) from exc
        except (StoreError, UniqueViolation) as exc:
            await self._log_orphan(identity.id, "profile_write_failed")
            raise ProvisioningError(
                "Could not write the profile record", account_id=identity.id
            ) from exc

        progress = None
        if account.role == UserRole.EMPLOYEE:
            try:
                progress = await self.progress_tracker.ensure_progress(identity.id)
            except StoreError as exc:
                await self._log_orphan(identity.id, "progress_create_failed")
                raise ProvisioningError(
                    "Could not start onboarding progress", account_id=identity.id
                ) from exc

        await logger.ainfo(
            "provision_completed",
            account_id=identity.id,
            role=role,
            employee_id=account.employee_id,
        )
        return ProvisionedAccount(account=to_account(account), progress=progress)

    async def _wait_for_profile(self, account_id: str) -> bool:
        """Poll for the baseline profile row; True once it exists."""
        attempts = self.settings.profile_wait_attempts
        delay = self.settings.profile_wait_initial_delay_seconds

        for attempt in range(attempts):
            if await self.accounts.get(account_id, refresh=True) is not None:
                return True
            if attempt < attempts - 1:
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.settings.profile_wait_max_delay_seconds)

        await logger.ainfo("profile_wait_exhausted", account_id=account_id, attempts=attempts)
        return False

    async def _upsert_profile(self, account_id: str, values: dict[str, Any]) -> AccountModel:
        await self._wait_for_profile(account_id)

        for _ in range(UPSERT_ATTEMPTS):
            if await self.accounts.update(account_id, values):
                break
            await logger.ainfo("profile_fallback_insert", account_id=account_id)
            try:
                await self.accounts.insert({"id": account_id, **values})
                break
            except UniqueViolation:
                # The baseline row appeared after the update missed it.
                await logger.ainfo("profile_insert_conflict", account_id=account_id)
        else:
            raise StoreError("Profile upsert did not converge", account_id=account_id)

        account = await self.accounts.get(account_id, refresh=True)
        if account is None:
            raise StoreError("Profile record missing after write", account_id=account_id)
        return account

    async def _log_orphan(self, account_id: str, reason: str) -> None:
        await logger.aerror(
            "provisioning_orphaned_identity", account_id=account_id, reason=reason
        )


def _profile_values(profile_fields: Mapping[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(profile_fields) - set(PROFILE_FIELDS))
    if unknown:
        raise ValidationError(unknown[0], f'"{unknown[0]}" is not allowed')

    values = {key: value for key, value in profile_fields.items() if value is not None}
    start_date = values.get("start_date")
    if isinstance(start_date, str):
        try:
            values["start_date"] = date.fromisoformat(start_date)
        except ValueError:
            raise ValidationError("start_date", '"start_date" must be an ISO date') from None
    return values
