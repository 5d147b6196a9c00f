"""Shared exception classes and handlers.

Every error leaves the API as `{"success": false, "message": ..., **detail}`.
"""

import logging
import re
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.detail = detail or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(
        self,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]] | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        extra = dict(detail or {})
        if errors is not None:
            extra["errors"] = errors
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=extra,
        )


class InvalidIdError(ValidationError):
    """Identifier is not a 24-character hexadecimal string."""

    def __init__(self, message: str = "Invalid ID format", **detail: Any) -> None:
        super().__init__(message=message, detail=detail or None)


class ConflictError(AppException):
    """Duplicate unique field, from a pre-check or a storage constraint."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


def is_object_id(value: Any) -> bool:
    """Check whether value is a 24-hex identifier."""
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))


def validate_object_id(value: str, message: str = "Invalid ID format") -> str:
    """Return the lowercased identifier or raise InvalidIdError."""
    if not is_object_id(value):
        raise InvalidIdError(message)
    return value.lower()


# =============================================================================
# Exception Handlers
# =============================================================================


def _envelope(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "message": message, **extra}


async def app_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle AppException and return the error envelope."""
    if isinstance(exc, AppException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(exc.message, **exc.detail),
        )
    return await unhandled_exception_handler(request, exc)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Wrap HTTPException (auth, rate limit, 404 route) in the error envelope."""
    if isinstance(exc.detail, dict):
        content = {"success": False, "message": "Request failed", **exc.detail}
    elif exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        content = _envelope("Route not found")
    else:
        content = _envelope(str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation failures as 400 with an errors list."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope("Validation error", errors=errors),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Log unexpected errors and return a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope("Server Error"),
    )
