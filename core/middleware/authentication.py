"""
Authentication middleware for reading the caller's session.

This middleware:
1. Extracts the session token from the Authorization header or session cookie
2. Verifies its signature and expiry
3. Stores the resulting SessionToken (or None) in the request scope

It never rejects a request. A missing, expired or malformed token simply
leaves the caller unauthenticated; the AuthGate middleware and the route
dependencies decide what that means for the requested path.
"""

import logging
from typing import Callable, Optional

import jwt
from fastapi import Request

from core.security import SessionToken, decode_session_token

logger = logging.getLogger(__name__)

SESSION_SCOPE_KEY = "session_token"


class AuthenticationMiddleware:
    """
    Session-reading middleware.

    Features:
    - Bearer token or HttpOnly cookie
    - JWT signature and expiry validation
    - Request scope injection
    """

    def __init__(
        self,
        app: Callable,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        cookie_name: str = "session",
    ):
        """
        Initialize authentication middleware.

        Args:
            app: ASGI application
            jwt_secret: Secret key for JWT verification
            jwt_algorithm: JWT signing algorithm
            cookie_name: Name of the session cookie
        """
        self.app = app
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.cookie_name = cookie_name

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        scope[SESSION_SCOPE_KEY] = self._load_session(request)

        await self.app(scope, receive, send)

    def _extract_token(self, request: Request) -> Optional[str]:
        """
        Extract the session token, preferring the Authorization header.

        Args:
            request: Incoming request

        Returns:
            Token string or None
        """
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:]  # Remove "Bearer " prefix

        return request.cookies.get(self.cookie_name) or None

    def _load_session(self, request: Request) -> Optional[SessionToken]:
        token = self._extract_token(request)
        if not token:
            return None

        try:
            return decode_session_token(token, self.jwt_secret, self.jwt_algorithm)
        except jwt.ExpiredSignatureError:
            logger.info(f"Expired session token on {request.url.path}")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid session token on {request.url.path}: {str(e)}")
        return None


def get_session_token(request: Request) -> Optional[SessionToken]:
    """
    Get the caller's session from the request scope.

    Args:
        request: FastAPI request

    Returns:
        SessionToken or None when unauthenticated
    """
    return request.scope.get(SESSION_SCOPE_KEY)
