"""Integration tests for account and profile endpoints."""

from __future__ import annotations

import pytest
from fastapi import status
from httpx import AsyncClient
from onboarding.core.auth import Role
from onboarding.domain import User
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tests.utils import auth_headers, create_account


@pytest.fixture
async def employee(session_factory: async_sessionmaker[AsyncSession]) -> User:
    async with session_factory() as session:
        return await create_account(
            session, "employee@example.com", profile={"full_name": "Dana Reyes"}
        )


@pytest.fixture
async def admin(session_factory: async_sessionmaker[AsyncSession]) -> User:
    async with session_factory() as session:
        return await create_account(session, "admin@example.com", role=Role.ADMIN)


class TestOwnProfile:
    """Tests for GET/PUT /users/profile."""

    @pytest.mark.asyncio
    async def test_get_profile(self, async_client: AsyncClient, employee: User) -> None:
        response = await async_client.get("/users/profile", headers=auth_headers(employee))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["account"]["full_name"] == "Dana Reyes"
        assert data["account"]["employee_id"] == employee.employee_id
        assert data["progress"]["onboarding_status"] == "pending"

    @pytest.mark.asyncio
    async def test_profile_no_token(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/users/profile")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_update_profile(self, async_client: AsyncClient, employee: User) -> None:
        response = await async_client.put(
            "/users/profile",
            json={"department": "Nursing", "phone": "555-0142"},
            headers=auth_headers(employee),
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["account"]["department"] == "Nursing"
        assert response.json()["account"]["phone"] == "555-0142"

    @pytest.mark.asyncio
    async def test_role_cannot_be_self_assigned(
        self, async_client: AsyncClient, employee: User
    ) -> None:
        response = await async_client.put(
            "/users/profile", json={"role": "admin"}, headers=auth_headers(employee)
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestAccountAdministration:
    """Tests for the admin account endpoints."""

    @pytest.mark.asyncio
    async def test_admin_lists_every_role(
        self, async_client: AsyncClient, employee: User, admin: User
    ) -> None:
        response = await async_client.get("/users/", headers=auth_headers(admin))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 2
        assert {item["account"]["role"] for item in data["items"]} == {"employee", "admin"}

    @pytest.mark.asyncio
    async def test_employee_cannot_list_accounts(
        self, async_client: AsyncClient, employee: User
    ) -> None:
        response = await async_client.get("/users/", headers=auth_headers(employee))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_admin_promotes_manager_to_employee(
        self,
        async_client: AsyncClient,
        session_factory: async_sessionmaker[AsyncSession],
        admin: User,
    ) -> None:
        """Promotion to employee assigns an employee ID and opens onboarding."""
        async with session_factory() as session:
            lead = await create_account(session, "lead@example.com", role=Role.MANAGER)

        response = await async_client.put(
            f"/users/{lead.user_id}",
            json={"role": "employee", "position": "Charge Nurse"},
            headers=auth_headers(admin),
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["account"]["role"] == "employee"
        assert data["account"]["position"] == "Charge Nurse"
        assert data["account"]["employee_id"].startswith("EMP")
        assert data["progress"]["onboarding_status"] == "pending"

    @pytest.mark.asyncio
    async def test_admin_cannot_demote_employee(
        self, async_client: AsyncClient, employee: User, admin: User
    ) -> None:
        response = await async_client.put(
            f"/users/{employee.user_id}",
            json={"role": "manager"},
            headers=auth_headers(admin),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"]["field"] == "role"

    @pytest.mark.asyncio
    async def test_employee_cannot_update_others(
        self,
        async_client: AsyncClient,
        session_factory: async_sessionmaker[AsyncSession],
        employee: User,
    ) -> None:
        async with session_factory() as session:
            other = await create_account(session, "other@example.com")

        response = await async_client.put(
            f"/users/{other.user_id}",
            json={"department": "Pharmacy"},
            headers=auth_headers(employee),
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_deactivated_account_is_locked_out(
        self, async_client: AsyncClient, employee: User, admin: User
    ) -> None:
        """Deactivation keeps the record but the account can no longer call the API."""
        response = await async_client.patch(
            f"/users/{employee.user_id}/deactivate", headers=auth_headers(admin)
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["account"]["is_active"] is False

        response = await async_client.get("/users/profile", headers=auth_headers(employee))
        assert response.status_code == status.HTTP_403_FORBIDDEN

        response = await async_client.get(
            f"/users/{employee.user_id}", headers=auth_headers(admin)
        )
        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_unknown_account_is_404(self, async_client: AsyncClient, admin: User) -> None:
        response = await async_client.get("/users/missing", headers=auth_headers(admin))

        assert response.status_code == status.HTTP_404_NOT_FOUND
