"""
Core middleware package.

This package provides the HTTP middleware stack:
- Error handling with sensitive data sanitization
- Structured logging with PII masking
- Session authentication (cookie or bearer JWT)
- AuthGate role-gated routing for pages
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
    get_logger,
)

from core.middleware.authentication import (
    AuthenticationMiddleware,
    get_session_token,
)

from core.middleware.authorization import (
    AuthGateMiddleware,
    Allow,
    RedirectTo,
    RouteClass,
    classify_path,
    dashboard_for,
    evaluate,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    "get_logger",
    # Authentication
    "AuthenticationMiddleware",
    "get_session_token",
    # AuthGate
    "AuthGateMiddleware",
    "Allow",
    "RedirectTo",
    "RouteClass",
    "classify_path",
    "dashboard_for",
    "evaluate",
]
