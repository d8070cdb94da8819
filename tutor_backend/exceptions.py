"""
Custom Exceptions for the Code Tutor backend.

Provides specific exception types for the error scenarios the API reports,
plus the handlers that turn them (and framework errors) into the
`{"error": ..., "message": ...}` response body clients expect.
"""

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class CodeTutorError(Exception):
    """Base exception for all Code Tutor errors."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)


# =============================================================================
# Authentication Exceptions
# =============================================================================

class AuthenticationError(CodeTutorError):
    """Base exception for authentication errors."""

    status_code = 401


class InvalidCredentialsError(AuthenticationError):
    """Raised when email/password do not match a user."""

    def __init__(self):
        super().__init__("Invalid email or password")


class InvalidTokenError(AuthenticationError):
    """Raised when a bearer token cannot be verified or has expired."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


# =============================================================================
# Resource Exceptions
# =============================================================================

class DuplicateEmailError(CodeTutorError):
    """Raised when an email is already registered to another user."""

    status_code = 400

    def __init__(self, message: str = "User already exists with this email"):
        super().__init__(message)


class ResourceNotFoundError(CodeTutorError):
    """Raised when a record does not exist or is not owned by the caller."""

    status_code = 404

    def __init__(self, resource: str, message: str = None):
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class PermissionDeniedError(CodeTutorError):
    """Raised when a user acts on another user's account."""

    status_code = 403


class InvalidRequestError(CodeTutorError):
    """Raised for semantically invalid input that passed schema validation."""

    status_code = 400


# =============================================================================
# Upload Exceptions
# =============================================================================

class UploadError(CodeTutorError):
    """Base exception for avatar upload errors."""

    status_code = 400


class NoFileUploadedError(UploadError):
    """Raised when a multipart request carries no file."""

    def __init__(self):
        super().__init__("No file uploaded")


class UnsupportedFileTypeError(UploadError):
    """Raised when an unsupported file type is uploaded."""

    def __init__(self, file_type: str, supported_types: list = None):
        self.file_type = file_type
        self.supported_types = supported_types or []
        super().__init__("Invalid file type. Only JPEG, PNG and GIF are allowed.")


class FileTooLargeError(UploadError):
    """Raised when a file exceeds the maximum allowed size."""

    def __init__(self, max_size: int):
        self.max_size = max_size
        max_mb = max_size / (1024 * 1024)
        super().__init__(f"File too large. Maximum size is {max_mb:g}MB.")


class InvalidImageError(UploadError):
    """Raised when the uploaded bytes are not a decodable image."""

    def __init__(self):
        super().__init__("Uploaded file is not a valid image")


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(CodeTutorError):
    """Raised when there's a configuration problem."""

    def __init__(self, setting: str, reason: str = None):
        self.setting = setting
        self.reason = reason
        msg = f"Configuration error: {setting}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


# =============================================================================
# Exception Handlers
# =============================================================================

def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_body(status_code: int, message: str, **extra) -> dict:
    """Build the standard error payload."""
    body = {"error": _reason(status_code), "message": message}
    body.update(extra)
    return body


async def code_tutor_error_handler(request: Request, exc: CodeTutorError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        message = "Internal server error"
    else:
        message = exc.message
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, message),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else _reason(exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", [])[1:])
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(
        status_code=400,
        content=error_body(400, message, details=errors),
    )


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Handler for rate limit exceeded errors.
    Includes Retry-After header for better client handling.
    """
    detail = str(exc.detail)
    retry_after = 60
    if "hour" in detail.lower():
        retry_after = 3600
    elif "second" in detail.lower():
        retry_after = 1

    return JSONResponse(
        status_code=429,
        content=error_body(
            429,
            f"Rate limit exceeded. Please wait {retry_after} seconds before retrying.",
            retry_after_seconds=retry_after,
        ),
        headers={"Retry-After": str(retry_after)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_body(500, "Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install all error handlers on the application."""
    app.add_exception_handler(CodeTutorError, code_tutor_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
