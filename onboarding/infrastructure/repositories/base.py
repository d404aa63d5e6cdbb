from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from onboarding.domain.errors import StoreError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

UNIQUE_VIOLATION_SQLSTATE = "23505"


class UniqueViolation(Exception):
    """Raised when a write collides with a unique constraint."""


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION_SQLSTATE
    message = str(orig).lower()
    return "unique" in message or "duplicate key" in message


@asynccontextmanager
async def store_guard(session: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Translate driver errors raised inside the block into domain errors.

    The session is rolled back on any failure so it stays usable for a
    follow-up read.
    """
    try:
        yield
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise UniqueViolation(operation) from exc
        logger.error("store_integrity_error", operation=operation, error=str(exc.orig))
        raise StoreError(f"Store rejected {operation}") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("store_error", operation=operation, error=str(exc))
        raise StoreError(f"Store failure during {operation}") from exc
