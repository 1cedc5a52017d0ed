"""
Custom exception hierarchy for the PocketBrain API.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class PocketBrainException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class StorageError(PocketBrainException):
    """The storage layer rejected a read or write."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORAGE_ERROR"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Storage failure during {operation}: {reason}",
            details={"operation": operation, "reason": reason},
        )


class LogSaveError(PocketBrainException):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "LOG_SAVE_FAILED"

    def __init__(self, error: str):
        super().__init__(
            message="Database rejected the log.",
            details={"error": error},
        )


class InvalidPayloadError(PocketBrainException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_PAYLOAD"

    def __init__(self, received: str):
        super().__init__(
            message=f"Log payload must be a JSON object, got {received}.",
            details={"received": received},
        )


class InvalidDateRangeError(PocketBrainException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DATE_RANGE"

    def __init__(self, start: date, end: date):
        super().__init__(
            message=f"Range start {start} is after range end {end}.",
            details={"start": str(start), "end": str(end)},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def pocketbrain_exception_handler(
    request: Request, exc: PocketBrainException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
