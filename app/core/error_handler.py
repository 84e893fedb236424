"""
Global exception handlers.

Maps every failure onto the error envelope:
{
    "success": false,
    "error": <message>,
    "code": <CODE>,
    "details": <extra info, development only for 5xx>
}
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.config import config
from app.core.exceptions import AppError, DatabaseError, InternalError

logger = logging.getLogger(__name__)

_DEFAULT_CODES = {
    status.HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
    status.HTTP_401_UNAUTHORIZED: "AUTH_REQUIRED",
    status.HTTP_403_FORBIDDEN: "INSUFFICIENT_PERMISSIONS",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def error_response(
    status_code: int,
    message: str,
    code: Optional[str] = None,
    details: Any = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body: dict = {"success": False, "error": message}
    if code:
        body["code"] = code
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc, AppError):
        code = exc.code
        details = exc.details
        if exc.status_code >= 500 and not config.is_development:
            details = None
    else:
        code = _DEFAULT_CODES.get(exc.status_code)
        details = None

    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(
        exc.status_code, message, code, details, getattr(exc, "headers", None)
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request data",
        "VALIDATION_ERROR",
        exc.errors(),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "A record with this information already exists",
        "DUPLICATE_ENTRY",
        str(exc.orig) if config.is_development else None,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Database operation failed",
        "DATABASE_ERROR",
        str(exc) if config.is_development else None,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "INTERNAL_ERROR",
        repr(exc) if config.is_development else None,
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)


@asynccontextmanager
async def error_boundary(
    message: str, code: str = "INTERNAL_ERROR"
) -> AsyncIterator[None]:
    """
    Convert anything that is not already an HTTP error into an InternalError.

    The raw cause is logged; it is attached as ``details`` only in development.

    Usage:
        async with error_boundary("Failed to fetch dashboard statistics"):
            ...
    """
    try:
        yield
    except HTTPException:
        raise
    except SQLAlchemyError as exc:
        logger.exception("%s: %s", message, exc)
        raise DatabaseError(message, str(exc) if config.is_development else None) from exc
    except Exception as exc:
        logger.exception("%s: %s", message, exc)
        raise InternalError(
            message, code, str(exc) if config.is_development else None
        ) from exc
