"""
Error handling middleware with security-compliant error sanitization.
Prevents sensitive data leakage while providing useful error information.
"""

import logging
import traceback
from typing import Any, Callable, Optional
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError
import re

from core.exceptions import ConflictError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be logged
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'session=[^;\s]+', re.IGNORECASE),
    re.compile(r'\b\d{3}-\d{2}-\d{4}\b'),  # SSN
    re.compile(r'\b\d{16}\b'),  # Credit card
]


def sanitize_error_message(message: Any) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """
    Extract safe error details without exposing sensitive information.

    Args:
        exc: The exception to extract details from
        include_details: Whether to include detailed error information (only in dev)

    Returns:
        Dictionary with safe error details
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }

    if include_details:
        # Only include stack trace in development
        details["traceback"] = traceback.format_exc()

    return details


def build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    path: str,
    method: str,
    details: Optional[Any] = None,
    request_id: Optional[str] = None,
) -> JSONResponse:
    """Build the `{"error": {...}}` envelope used by every error response."""
    error_response = {
        "error": {
            "code": error_code,
            "message": message,
            "path": path,
            "method": method,
        }
    }

    if details is not None:
        error_response["error"]["details"] = details

    if request_id:
        error_response["error"]["request_id"] = request_id

    return JSONResponse(status_code=status_code, content=error_response)


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """
    Format validation errors into a user-friendly structure.

    Args:
        exc: The validation exception

    Returns:
        List of formatted validation errors
    """
    errors = []
    for error in exc.errors():
        error_dict = {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }

        # Include input value only if it's a simple type and not sensitive
        if "input" in error:
            input_value = error["input"]
            if isinstance(input_value, (str, int, float, bool)):
                input_str = str(input_value)
                if not any(pattern.search(input_str) for pattern in SENSITIVE_PATTERNS):
                    error_dict["input"] = input_value

        errors.append(error_dict)

    return errors


class ErrorHandlingMiddleware:
    """
    Comprehensive error handling middleware with security compliance.

    Features:
    - Sanitizes error messages to prevent sensitive data leakage
    - Provides structured error responses
    - Maps domain errors (not found, conflict, storage) to HTTP statuses
    - Logs errors with appropriate severity
    """

    def __init__(self, app: Callable, debug: bool = False):
        """
        Initialize error handling middleware.

        Args:
            app: The ASGI application
            debug: Whether to include detailed error information
        """
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = await self._handle_exception(exc, scope)
            await response(scope, receive, send)

    async def _handle_exception(self, exc: Exception, scope: dict) -> Response:
        """
        Handle different types of exceptions and return appropriate responses.

        Args:
            exc: The exception to handle
            scope: ASGI scope for context

        Returns:
            JSONResponse with error details
        """
        request_path = scope.get("path", "unknown")
        request_method = scope.get("method", "unknown")

        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_code = "INTERNAL_SERVER_ERROR"
        message = "An unexpected error occurred"
        details = None

        if isinstance(exc, StarletteHTTPException):
            status_code = exc.status_code
            error_code = "HTTP_EXCEPTION"
            message = sanitize_error_message(exc.detail)
            logger.warning(
                f"HTTP exception: {request_method} {request_path} - "
                f"Status: {status_code}, Message: {message}"
            )

        elif isinstance(exc, RequestValidationError):
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
            error_code = "VALIDATION_ERROR"
            message = "Request validation failed"
            details = format_validation_errors(exc)
            logger.warning(
                f"Validation error: {request_method} {request_path} - "
                f"Errors: {details}"
            )

        elif isinstance(exc, NotFoundError):
            status_code = status.HTTP_404_NOT_FOUND
            error_code = "NOT_FOUND"
            message = sanitize_error_message(str(exc))
            logger.info(f"Not found: {request_method} {request_path} - {message}")

        elif isinstance(exc, ConflictError):
            status_code = status.HTTP_409_CONFLICT
            error_code = "CONFLICT"
            message = sanitize_error_message(str(exc)) or "Resource already exists"
            logger.warning(f"Conflict: {request_method} {request_path} - {message}")

        elif isinstance(exc, StorageError):
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            error_code = "STORAGE_ERROR"
            message = "Storage temporarily unavailable"
            logger.error(
                f"Storage error: {request_method} {request_path} - "
                f"{sanitize_error_message(str(exc))}",
                exc_info=True
            )

        elif isinstance(exc, IntegrityError):
            status_code = status.HTTP_409_CONFLICT
            error_code = "INTEGRITY_ERROR"
            message = "Database integrity constraint violated"
            if self.debug:
                details = get_safe_error_details(exc, include_details=True)
            logger.error(
                f"Database integrity error: {request_method} {request_path}",
                exc_info=not self.debug
            )

        elif isinstance(exc, OperationalError):
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            error_code = "DATABASE_ERROR"
            message = "Database service temporarily unavailable"
            logger.error(
                f"Database operational error: {request_method} {request_path}",
                exc_info=True
            )

        elif isinstance(exc, SQLAlchemyError):
            error_code = "DATABASE_ERROR"
            message = "A database error occurred"
            if self.debug:
                details = get_safe_error_details(exc, include_details=True)
            logger.error(
                f"SQLAlchemy error: {request_method} {request_path}",
                exc_info=not self.debug
            )

        elif isinstance(exc, ValueError):
            status_code = status.HTTP_400_BAD_REQUEST
            error_code = "INVALID_INPUT"
            message = sanitize_error_message(str(exc)) or "Invalid input provided"
            logger.warning(
                f"Value error: {request_method} {request_path} - {message}"
            )

        elif isinstance(exc, PermissionError):
            status_code = status.HTTP_403_FORBIDDEN
            error_code = "PERMISSION_DENIED"
            message = "You don't have permission to perform this action"
            logger.warning(
                f"Permission error: {request_method} {request_path}"
            )

        else:
            if self.debug:
                details = get_safe_error_details(exc, include_details=True)
            logger.error(
                f"Unhandled exception: {request_method} {request_path} - "
                f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
                exc_info=True
            )

        request_id = None
        if "headers" in scope:
            headers = dict(scope["headers"])
            raw_request_id = headers.get(b"x-request-id")
            if raw_request_id:
                request_id = raw_request_id.decode()

        return build_error_response(
            status_code,
            error_code,
            message,
            request_path,
            request_method,
            details=details,
            request_id=request_id,
        )


def get_request_id(request: Request) -> Optional[str]:
    """Request id set by the logging middleware, else the caller's header."""
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id")


def setup_error_handlers(app):
    """
    Set up exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return build_error_response(
            exc.status_code,
            "HTTP_EXCEPTION",
            sanitize_error_message(exc.detail),
            str(request.url.path),
            request.method,
            request_id=get_request_id(request),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors."""
        return build_error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Request validation failed",
            str(request.url.path),
            request.method,
            request_id=get_request_id(request),
            details=format_validation_errors(exc),
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        """Handle missing (or not owned) records."""
        return build_error_response(
            status.HTTP_404_NOT_FOUND,
            "NOT_FOUND",
            sanitize_error_message(str(exc)),
            str(request.url.path),
            request.method,
            request_id=get_request_id(request),
        )

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        """Handle duplicate records."""
        return build_error_response(
            status.HTTP_409_CONFLICT,
            "CONFLICT",
            sanitize_error_message(str(exc)) or "Resource already exists",
            str(request.url.path),
            request.method,
            request_id=get_request_id(request),
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        """Handle failed database transactions."""
        logger.error(
            f"Storage error: {request.method} {request.url.path} - "
            f"{sanitize_error_message(str(exc))}",
            exc_info=True
        )
        return build_error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "STORAGE_ERROR",
            "Storage temporarily unavailable",
            str(request.url.path),
            request.method,
            request_id=get_request_id(request),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Handle all other exceptions."""
        logger.error(
            f"Unhandled exception: {request.method} {request.url.path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=True
        )
        return build_error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred",
            str(request.url.path),
            request.method,
            request_id=get_request_id(request),
        )
