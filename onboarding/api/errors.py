"""Mapping of domain errors onto HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from onboarding.core.auth import Role
from onboarding.domain.errors import INTERNAL_KINDS, OnboardingError, ValidationError

logger = structlog.get_logger()

STATUS_BY_KIND = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "identity_conflict": status.HTTP_409_CONFLICT,
    "duplicate_submission": status.HTTP_409_CONFLICT,
}

GENERIC_INTERNAL_MESSAGE = "The request could not be completed. Please try again later."


def error_response(request: Request, exc: OnboardingError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)

    message = exc.message
    caller = getattr(request.state, "user", None)
    if exc.kind in INTERNAL_KINDS and (caller is None or caller.role is not Role.ADMIN):
        message = GENERIC_INTERNAL_MESSAGE

    error: dict[str, str] = {"kind": exc.kind, "message": message}
    if isinstance(exc, ValidationError):
        error["field"] = exc.field
    return JSONResponse(status_code=status_code, content={"error": error})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(OnboardingError)
    async def handle_onboarding_error(request: Request, exc: OnboardingError) -> JSONResponse:
        response = error_response(request, exc)
        if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            await logger.aerror(
                "request_failed", kind=exc.kind, error=exc.message, details=exc.details
            )
        else:
            await logger.ainfo("request_rejected", kind=exc.kind, status_code=response.status_code)
        return response
