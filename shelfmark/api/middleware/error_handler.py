"""
Error Handling for Shelfmark

Centralized error handling:
- Structured error responses (always carrying ``message``)
- Logging of errors
- Exception translation (domain, validation, database, unexpected)
"""

import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shelfmark.errors import ServiceError, ShelfmarkException

from .logging import get_request_id


def create_error_response(
    message: str,
    code: str,
    status_code: int,
    detail=None,
    error: str = None,
) -> JSONResponse:
    """Create standardized error response."""
    content = {
        "message": message,
        "code": code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if detail is not None:
        content["detail"] = detail
    if error is not None:
        content["error"] = error

    request_id = get_request_id()
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _format_validation_errors(errors) -> list[str]:
    formatted = []
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        formatted.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    return formatted


@asynccontextmanager
async def service_errors(message: str) -> AsyncIterator[None]:
    """
    Translate persistence failures into a generic ServiceError.

    Usage:
        async with service_errors("Error fetching books"):
            books = await repo.list_books(...)
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"{message}: {type(e).__name__}: {e}")
        raise ServiceError(message) from e


def setup_exception_handlers(app, expose_traceback: bool = False):
    """
    Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application
        expose_traceback: Attach the stack trace of server errors to the
            response body (never in production)
    """

    def _trace(exc: Exception):
        if not expose_traceback:
            return None
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    @app.exception_handler(ShelfmarkException)
    async def shelfmark_exception_handler(request: Request, exc: ShelfmarkException):
        if exc.status_code >= 500:
            logger.error(f"[{get_request_id()}] Shelfmark error: {exc.code} - {exc.message} ({request.url.path})")
        else:
            logger.warning(f"[{get_request_id()}] Shelfmark error: {exc.code} - {exc.message} ({request.url.path})")
        return create_error_response(
            message=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail if exc.status_code < 500 else None,
            error=_trace(exc) if exc.status_code >= 500 else None,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Request validation error on {request.url.path}: {exc.errors()}")
        return create_error_response(
            message="Invalid request",
            code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_format_validation_errors(exc.errors()),
        )

    @app.exception_handler(PydanticValidationError)
    async def validation_exception_handler(request: Request, exc: PydanticValidationError):
        logger.warning(f"Validation error: {str(exc)}")
        return create_error_response(
            message="Invalid request",
            code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_format_validation_errors(exc.errors()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and request.url.path.startswith("/api") and message == "Not Found":
            message = "API route not found"
        return create_error_response(
            message=message,
            code="HTTP_ERROR",
            status_code=exc.status_code,
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Database error on {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
        return create_error_response(
            message="Database error",
            code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error=_trace(exc),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"[{get_request_id()}] Unhandled exception: {type(exc).__name__}: {str(exc)}\n{traceback.format_exc()}"
        )
        return create_error_response(
            message="Something went wrong!",
            code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error=_trace(exc),
        )
