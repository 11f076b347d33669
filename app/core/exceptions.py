# File: app/core/exceptions.py
from typing import Any, Dict, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class OnboardingError(Exception):
    """Base class for errors raised by the onboarding core."""

    code = "onboarding_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(OnboardingError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(OnboardingError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(OnboardingError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ExpiredError(OnboardingError):
    """Token is valid but past its expiry; callers should offer a resend."""

    code = "expired"
    status_code = status.HTTP_410_GONE


class UpstreamError(OnboardingError):
    code = "upstream_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class TransactionError(OnboardingError):
    code = "transaction_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def onboarding_error_handler(request: Request, exc: OnboardingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.code,
            "message": exc.message,
            "details": exc.details,
        },
    )
