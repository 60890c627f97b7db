"""
Error hierarchy and global exception handlers.

Every failure leaves the API as ``{"ok": false, "error": "<message>"}``.
Services raise ``ApiError`` subclasses; platform exceptions raised by the
Supabase client are translated here.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from supabase import AuthApiError, AuthError, PostgrestAPIError, StorageException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base exception for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(ApiError):
    """The platform answered, but not with something we can use."""

    status_code = status.HTTP_502_BAD_GATEWAY


def error_body(message: str) -> dict:
    return {"ok": False, "error": message}


def platform_error_message(exc: Exception) -> str:
    """Best-effort message extraction from Supabase client exceptions."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    details = getattr(exc, "details", None)
    if isinstance(details, str) and details:
        return details
    if exc.args and isinstance(exc.args[0], dict):
        return str(exc.args[0].get("message") or exc.args[0])
    return str(exc) or "Unexpected error"


def format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        messages.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "; ".join(messages) or "Invalid request data"


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error("ApiError on %s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(format_validation_errors(exc)),
        )

    @app.exception_handler(PostgrestAPIError)
    async def postgrest_error_handler(request: Request, exc: PostgrestAPIError):
        message = platform_error_message(exc)
        logger.error("Database error on %s: %s", request.url.path, message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(message),
        )

    @app.exception_handler(StorageException)
    async def storage_error_handler(request: Request, exc: StorageException):
        message = platform_error_message(exc)
        logger.error("Storage error on %s: %s", request.url.path, message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(message),
        )

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        message = platform_error_message(exc)
        logger.warning("Auth error on %s: %s", request.url.path, message)
        if isinstance(exc, AuthApiError):
            code = status.HTTP_401_UNAUTHORIZED
        else:
            code = status.HTTP_500_INTERNAL_SERVER_ERROR
        return JSONResponse(
            status_code=code,
            content=error_body(message),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all; never leaks internal details."""
        logger.error(
            "Unhandled exception on %s: %s", request.url.path, exc, exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("An unexpected error occurred"),
        )
