from __future__ import annotations

import pytest
from onboarding.core.auth import Role
from onboarding.domain.errors import (
    AuthorizationDenied,
    NotFound,
    ProvisioningError,
    ValidationError,
)
from onboarding.domain.models import AccountFilter, Page
from onboarding.domain.services import AccountService
from onboarding.infrastructure.employee_ids import EmployeeIdGenerationError
from sqlalchemy.ext.asyncio import AsyncSession
from tests.utils import create_account


class OfflineIdGenerator:
    async def next(self) -> str:
        raise EmployeeIdGenerationError("sequence offline")


class TestResolveUser:
    async def test_resolves_role_and_profile(self, db: AsyncSession) -> None:
        employee = await create_account(
            db, "resolve@example.com", profile={"full_name": "Dana Reyes"}
        )

        user = await AccountService(db).resolve_user(employee.user_id, session_id="sess-1")

        assert user.role is Role.EMPLOYEE
        assert user.full_name == "Dana Reyes"
        assert user.employee_id == employee.employee_id
        assert user.session_id == "sess-1"

    async def test_unknown_account(self, db: AsyncSession) -> None:
        with pytest.raises(NotFound):
            await AccountService(db).resolve_user("missing")

    async def test_deactivated_account_is_denied(self, db: AsyncSession) -> None:
        employee = await create_account(db, "gone@example.com")
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)
        service = AccountService(db)
        await service.deactivate_account(admin, employee.user_id)

        with pytest.raises(AuthorizationDenied):
            await service.resolve_user(employee.user_id)


class TestProfile:
    async def test_employee_profile_includes_progress(self, db: AsyncSession) -> None:
        employee = await create_account(db, "profile@example.com")

        profile = await AccountService(db).get_profile(employee)

        assert profile.account.email == "profile@example.com"
        assert profile.progress is not None
        assert profile.progress.onboarding_status == "pending"

    async def test_manager_profile_has_no_progress(self, db: AsyncSession) -> None:
        manager = await create_account(db, "boss@example.com", role=Role.MANAGER)

        profile = await AccountService(db).get_profile(manager)

        assert profile.account.role == "manager"
        assert profile.progress is None

    async def test_update_own_profile(self, db: AsyncSession) -> None:
        employee = await create_account(db, "edit@example.com")

        profile = await AccountService(db).update_own_profile(
            employee, {"department": "Pharmacy", "phone": "555-0199"}
        )

        assert profile.account.department == "Pharmacy"
        assert profile.account.phone == "555-0199"

    @pytest.mark.parametrize("field", ["role", "employee_id", "email", "is_active"])
    async def test_protected_fields_cannot_be_self_edited(
        self, db: AsyncSession, field: str
    ) -> None:
        employee = await create_account(db, "escalate@example.com")

        with pytest.raises(ValidationError) as exc_info:
            await AccountService(db).update_own_profile(employee, {field: "admin"})

        assert exc_info.value.field == field

    async def test_employee_cannot_read_another_account(self, db: AsyncSession) -> None:
        first = await create_account(db, "a@example.com")
        second = await create_account(db, "b@example.com")

        with pytest.raises(AuthorizationDenied):
            await AccountService(db).get_account(first, second.user_id)


class TestAdministration:
    async def test_admin_changes_start_date_and_position(self, db: AsyncSession) -> None:
        employee = await create_account(db, "dates@example.com")
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)

        result = await AccountService(db).admin_update_account(
            admin, employee.user_id, {"start_date": "2026-11-02", "position": "LPN"}
        )

        assert result.account.start_date.isoformat() == "2026-11-02"
        assert result.account.position == "LPN"
        assert result.account.employee_id == employee.employee_id

    async def test_employee_cannot_be_moved_to_privileged_role(self, db: AsyncSession) -> None:
        employee = await create_account(db, "demote@example.com")
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)
        service = AccountService(db)

        with pytest.raises(ValidationError) as exc_info:
            await service.admin_update_account(admin, employee.user_id, {"role": "manager"})

        assert exc_info.value.field == "role"
        unchanged = await service.get_account(admin, employee.user_id)
        assert unchanged.account.role == "employee"
        assert unchanged.account.employee_id == employee.employee_id

    async def test_promotion_to_employee_allocates_id_and_progress(
        self, db: AsyncSession
    ) -> None:
        manager = await create_account(db, "lead@example.com", role=Role.MANAGER)
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)
        assert manager.employee_id is None

        result = await AccountService(db).admin_update_account(
            admin, manager.user_id, {"role": "employee"}
        )

        assert result.account.role == "employee"
        assert result.account.employee_id.startswith("EMP")
        assert result.progress is not None
        assert result.progress.onboarding_status == "pending"

    async def test_promotion_fails_when_no_id_can_be_allocated(self, db: AsyncSession) -> None:
        manager = await create_account(db, "noid@example.com", role=Role.MANAGER)
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)
        service = AccountService(db, id_generator=OfflineIdGenerator())

        with pytest.raises(ProvisioningError):
            await service.admin_update_account(admin, manager.user_id, {"role": "employee"})

        unchanged = await service.get_account(admin, manager.user_id)
        assert unchanged.account.role == "manager"
        assert unchanged.account.employee_id is None

    async def test_admin_rejects_unknown_role(self, db: AsyncSession) -> None:
        employee = await create_account(db, "role@example.com")
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)

        with pytest.raises(ValidationError) as exc_info:
            await AccountService(db).admin_update_account(
                admin, employee.user_id, {"role": "owner"}
            )

        assert exc_info.value.field == "role"

    async def test_manager_cannot_update_accounts(self, db: AsyncSession) -> None:
        employee = await create_account(db, "managed@example.com")
        manager = await create_account(db, "manager@example.com", role=Role.MANAGER)

        with pytest.raises(AuthorizationDenied):
            await AccountService(db).admin_update_account(
                manager, employee.user_id, {"department": "Nursing"}
            )

    async def test_deactivation_keeps_the_record(self, db: AsyncSession) -> None:
        employee = await create_account(db, "leaver@example.com")
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)
        service = AccountService(db)

        result = await service.deactivate_account(admin, employee.user_id)

        assert result.account.is_active is False
        stored = await service.get_account(admin, employee.user_id)
        assert stored.account.email == "leaver@example.com"

    async def test_admin_cannot_deactivate_self(self, db: AsyncSession) -> None:
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)

        with pytest.raises(ValidationError):
            await AccountService(db).deactivate_account(admin, admin.user_id)

    async def test_list_accounts_includes_every_role(self, db: AsyncSession) -> None:
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)
        await create_account(db, "manager@example.com", role=Role.MANAGER)
        await create_account(db, "employee@example.com")

        result = await AccountService(db).list_accounts(admin, AccountFilter(), Page())

        assert result.total == 3
        assert {row.account.role for row in result.items} == {"admin", "manager", "employee"}

    async def test_list_accounts_by_role(self, db: AsyncSession) -> None:
        admin = await create_account(db, "admin@example.com", role=Role.ADMIN)
        await create_account(db, "manager@example.com", role=Role.MANAGER)

        result = await AccountService(db).list_accounts(
            admin, AccountFilter(role="manager"), Page()
        )

        assert [row.account.email for row in result.items] == ["manager@example.com"]
