from __future__ import annotations

from typing import Protocol

import structlog
from onboarding.core.config import get_settings
from onboarding.domain.errors import StoreError
from onboarding.infrastructure.db.models import EmployeeIdAllocation
from onboarding.infrastructure.repositories.base import UniqueViolation, store_guard
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class EmployeeIdGenerationError(Exception):
    """Raised when a new employee ID cannot be allocated."""


class EmployeeIdGenerator(Protocol):
    """Source of globally unique employee IDs."""

    async def next(self) -> str: ...


class SequenceEmployeeIdGenerator:
    """Allocates IDs from an auto-incrementing table, e.g. ``EMP000042``."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        prefix: str | None = None,
        width: int | None = None,
    ) -> None:
        settings = get_settings()
        self.session = session
        self.prefix = prefix if prefix is not None else settings.employee_id_prefix
        self.width = width if width is not None else settings.employee_id_width

    async def next(self) -> str:
        allocation = EmployeeIdAllocation()
        try:
            async with store_guard(self.session, "employee_id_allocate"):
                self.session.add(allocation)
                await self.session.commit()
        except (StoreError, UniqueViolation) as exc:
            raise EmployeeIdGenerationError("Employee ID sequence unavailable") from exc

        employee_id = f"{self.prefix}{allocation.id:0{self.width}d}"
        logger.debug("employee_id_allocated", employee_id=employee_id)
        return employee_id
