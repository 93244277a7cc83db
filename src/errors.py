"""Application error type and its JSON rendering.

Every failure a handler reports is an ``APIError``: a message, a kind and
the HTTP status that kind maps to. The handlers registered in ``src.main``
render it, and framework errors, as ``{"message": ...}``.
"""

import logging
from enum import Enum

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Failure categories and their HTTP status codes."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    SERVER = "server"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.SERVER: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class APIError(Exception):
    """An error surfaced to the client with a message and status code."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @classmethod
    def validation(cls, message: str) -> "APIError":
        return cls(ErrorKind.VALIDATION, message)

    @classmethod
    def not_found(cls, message: str) -> "APIError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def forbidden(cls, message: str) -> "APIError":
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def unauthorized(cls, message: str) -> "APIError":
        return cls(ErrorKind.UNAUTHORIZED, message)

    @classmethod
    def server(cls, message: str) -> "APIError":
        return cls(ErrorKind.SERVER, message)

    def __repr__(self) -> str:
        return f"APIError(kind={self.kind.value!r}, message={self.message!r})"


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    """Build the JSON body shared by every error response."""
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.UNAUTHORIZED else None
    return error_response(exc.status_code, exc.message, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors, including unmatched routes."""
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request body/parameter validation failures as a single message."""
    errors = exc.errors()
    if not errors:
        return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "Invalid request")

    first = errors[0]
    field = ".".join(
        str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")
    )
    message = first.get("msg", "Invalid value")
    if field:
        message = f"{field}: {message}"
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message)


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Render a database failure that no handler translated itself."""
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "A database error occurred")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort for anything else, so clients still get a message body."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
