"""
Error taxonomy and JSON error rendering.

Every failure leaves the API as ``{"error": <message>, "code": <ErrorCode>}``
with a status from a fixed set. Backing-service errors are logged by type
only and rendered as a generic internal error so store text never reaches a
client.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_TOKEN = "INVALID_TOKEN"
    MISSING_AUTH = "MISSING_AUTH"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class APIError(Exception):
    """An error with a stable code, safe to show to the client."""

    def __init__(self, code: ErrorCode, status_code: int, message: str):
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.message = message


class BackendError(Exception):
    """Failure talking to a backing service (store, auth, storage)."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


def unauthorized(message: str = "Authentication required") -> APIError:
    return APIError(ErrorCode.UNAUTHORIZED, 401, message)


def invalid_token() -> APIError:
    return APIError(ErrorCode.INVALID_TOKEN, 401, "Invalid or expired token")


def missing_auth() -> APIError:
    return APIError(
        ErrorCode.MISSING_AUTH, 401, "Authentication header required"
    )


def forbidden(
    message: str = "You do not have permission to perform this action",
) -> APIError:
    return APIError(ErrorCode.FORBIDDEN, 403, message)


def not_found(message: str = "Resource not found") -> APIError:
    return APIError(ErrorCode.NOT_FOUND, 404, message)


def validation(message: str = "Invalid request data") -> APIError:
    return APIError(ErrorCode.VALIDATION_ERROR, 400, message)


def conflict(message: str = "Resource already exists") -> APIError:
    return APIError(ErrorCode.CONFLICT, 409, message)


def rate_limited() -> APIError:
    return APIError(
        ErrorCode.RATE_LIMITED, 429, "Too many requests. Please try again later."
    )


def internal(
    message: str = "An error occurred processing your request",
) -> APIError:
    return APIError(ErrorCode.INTERNAL_ERROR, 500, message)


def error_body(code: ErrorCode, message: str) -> dict:
    return {"error": message, "code": code.value}


async def _api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("[%s] %s %s", exc.code.value, request.method, request.url.path)
    return JSONResponse(
        status_code=exc.status_code, content=error_body(exc.code, exc.message)
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request data"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ())[1:])
        detail = first.get("msg", "")
        message = f"{location}: {detail}" if location else detail or message
    return JSONResponse(
        status_code=400, content=error_body(ErrorCode.VALIDATION_ERROR, message)
    )


async def _backend_error_handler(
    request: Request, exc: BackendError
) -> JSONResponse:
    logger.error(
        "Backend failure on %s %s (%s)",
        request.method,
        request.url.path,
        type(exc).__name__,
    )
    err = internal()
    return JSONResponse(
        status_code=err.status_code, content=error_body(err.code, err.message)
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = internal()
    return JSONResponse(
        status_code=err.status_code, content=error_body(err.code, err.message)
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(BackendError, _backend_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
