"""
Global Exception Handlers

Every error leaves the API as an ``ErrorResponse`` JSON body. Domain
exceptions are mapped to their HTTP status here so routes can let them
propagate.
"""

import logging
import traceback
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models.errors import ErrorResponse, ValidationErrorItem, ValidationErrorResponse
from inbox_actions.exceptions import (
    ActionAccessError,
    ActionNotFoundError,
    ProviderAuthError,
    ProviderError,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, error_code: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        message=message,
        error_code=error_code,
        details=details,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def add_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ActionNotFoundError, action_not_found_handler)
    app.add_exception_handler(ActionAccessError, action_access_handler)
    app.add_exception_handler(ProviderError, provider_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    log_exception(request, exc, exc.status_code)
    response = _error(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}")
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation errors with one entry per invalid field."""
    log_exception(request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY)

    validation_errors = [
        ValidationErrorItem(
            loc=[str(loc_item) for loc_item in error["loc"]],
            msg=error["msg"],
            type=error["type"],
        )
        for error in exc.errors()
    ]
    body = ValidationErrorResponse(
        message="Request validation error",
        error_code="VALIDATION_ERROR",
        validation_errors=validation_errors,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=jsonable_encoder(body))


async def action_not_found_handler(request: Request, exc: ActionNotFoundError) -> JSONResponse:
    log_exception(request, exc, status.HTTP_404_NOT_FOUND)
    return _error(status.HTTP_404_NOT_FOUND, "Action not found", "ACTION_NOT_FOUND", {"action_id": exc.action_id})


async def action_access_handler(request: Request, exc: ActionAccessError) -> JSONResponse:
    log_exception(request, exc, status.HTTP_403_FORBIDDEN)
    return _error(status.HTTP_403_FORBIDDEN, "Forbidden", "ACTION_FORBIDDEN", {"action_id": exc.action_id})


async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    """Mailbox failures: 401 when the account must be reconnected, 502 otherwise."""
    if isinstance(exc, ProviderAuthError):
        log_exception(request, exc, status.HTTP_401_UNAUTHORIZED)
        return _error(status.HTTP_401_UNAUTHORIZED, str(exc), "PROVIDER_AUTH_ERROR", {"provider": exc.provider})
    log_exception(request, exc, status.HTTP_502_BAD_GATEWAY)
    return _error(status.HTTP_502_BAD_GATEWAY, str(exc), "PROVIDER_ERROR", {"provider": exc.provider})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    log_exception(request, exc, status.HTTP_400_BAD_REQUEST)
    return _error(status.HTTP_400_BAD_REQUEST, str(exc), "BAD_REQUEST")


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled exceptions, sanitized."""
    log_exception(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, include_traceback=True)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        "INTERNAL_SERVER_ERROR",
        {"type": exc.__class__.__name__},
    )


def log_exception(request: Request, exc: Exception, status_code: int, include_traceback: bool = False) -> None:
    """Log exception with request context, severity following the status code."""
    if status_code >= 500:
        log_level = logging.ERROR
    elif status_code >= 400:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    error_details = {
        "status_code": status_code,
        "error_type": exc.__class__.__name__,
        "error_message": str(exc),
        "client_host": request.client.host if request.client else "unknown",
    }
    if include_traceback:
        error_details["traceback"] = traceback.format_exc()

    logger.log(
        log_level,
        f"Exception during request to {request.method} {request.url.path}",
        extra={"error_details": error_details},
    )
