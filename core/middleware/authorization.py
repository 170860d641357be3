"""
Role-gated routing for page requests (AuthGate).

`evaluate()` is a pure function of (path, session, method) that returns
either `Allow` or `RedirectTo(target)`. It is evaluated as a decision table:

1. Public paths are allowed for everyone.
2. Dashboards need a session and a role; a dashboard for the other role
   redirects to the caller's own dashboard.
3. The login page redirects signed-in callers onwards (role selection or
   their dashboard).
4. The role selection page is only for signed-in callers without a role.
5. Other protected pages (posting a job) need a session.
6. Everything else is allowed; API handlers enforce their own access rules.

`AuthGateMiddleware` applies the decision to each HTTP request using the
session that AuthenticationMiddleware placed in the scope.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from fastapi.responses import RedirectResponse

from core.security import SessionToken
from database.models.users import UserRole

logger = logging.getLogger(__name__)


LOGIN_PATH = "/auth/login"
ROLE_SELECTION_PATH = "/auth/role-selection"
DASHBOARD_PATH = "/dashboard"
HOME_PATH = "/"

# Temporary redirect that keeps the method and body
REDIRECT_STATUS = 307

DASHBOARD_PATHS: dict[UserRole, str] = {
    UserRole.EMPLOYEE: "/dashboard/employee",
    UserRole.EMPLOYER: "/dashboard/employer",
}

# Public regardless of session (matched as the path or a sub-path)
PUBLIC_PREFIXES = (
    "/jobs",
    "/auth/register",
    "/api/v1/auth",
    "/static",
    "/uploads",
    "/health",
    "/ready",
    "/docs",
    "/redoc",
)
PUBLIC_EXACT = (HOME_PATH, "/openapi.json")

# Public read-only job listing API
PUBLIC_READ_PREFIXES = ("/api/v1/jobs",)
READ_METHODS = ("GET", "HEAD")

PROTECTED_PREFIXES = ("/post-job",)


class RouteClass(str, Enum):
    """Static classification of a request path."""

    PUBLIC = "public"
    AUTH_ENTRY = "auth-entry"
    ROLE_SELECTION = "role-selection"
    DASHBOARD_EMPLOYEE = "dashboard-employee"
    DASHBOARD_EMPLOYER = "dashboard-employer"
    DASHBOARD = "dashboard"
    PROTECTED = "protected-other"
    OTHER = "other"


DASHBOARD_ROUTE_ROLES: dict[RouteClass, Optional[UserRole]] = {
    RouteClass.DASHBOARD_EMPLOYEE: UserRole.EMPLOYEE,
    RouteClass.DASHBOARD_EMPLOYER: UserRole.EMPLOYER,
    RouteClass.DASHBOARD: None,
}


@dataclass(frozen=True)
class Allow:
    """Let the request through."""


@dataclass(frozen=True)
class RedirectTo:
    """Short-circuit the request with a redirect."""

    target: str


GateDecision = Union[Allow, RedirectTo]

ALLOW = Allow()


def normalize_path(path: str) -> str:
    """Collapse trailing slashes; an empty path is the root."""
    if not path:
        return HOME_PATH
    stripped = path.rstrip("/")
    return stripped or HOME_PATH


def _is_under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def _is_under_any(path: str, prefixes: tuple[str, ...]) -> bool:
    return any(_is_under(path, prefix) for prefix in prefixes)


def classify_path(path: str, method: str = "GET") -> RouteClass:
    """
    Classify a request path.

    Args:
        path: Request path
        method: HTTP method (only relevant for the public job listing API)

    Returns:
        The route class
    """
    path = normalize_path(path)

    if _is_under(path, LOGIN_PATH):
        return RouteClass.AUTH_ENTRY
    if path == ROLE_SELECTION_PATH:
        return RouteClass.ROLE_SELECTION
    if _is_under(path, DASHBOARD_PATHS[UserRole.EMPLOYEE]):
        return RouteClass.DASHBOARD_EMPLOYEE
    if _is_under(path, DASHBOARD_PATHS[UserRole.EMPLOYER]):
        return RouteClass.DASHBOARD_EMPLOYER
    # String prefix, not segment-aware: /dashboard-admin is a dashboard path
    if path.startswith(DASHBOARD_PATH):
        return RouteClass.DASHBOARD

    if path in PUBLIC_EXACT or _is_under_any(path, PUBLIC_PREFIXES):
        return RouteClass.PUBLIC
    if path.startswith("/favicon"):
        return RouteClass.PUBLIC
    if method.upper() in READ_METHODS and _is_under_any(path, PUBLIC_READ_PREFIXES):
        return RouteClass.PUBLIC

    if _is_under_any(path, PROTECTED_PREFIXES):
        return RouteClass.PROTECTED

    return RouteClass.OTHER


def dashboard_for(role: UserRole) -> str:
    """Landing page for a role."""
    return DASHBOARD_PATHS[role]


def _usable_session(session: object) -> Optional[SessionToken]:
    # Anything that is not a SessionToken with a user id counts as no session
    if isinstance(session, SessionToken) and session.user_id:
        return session
    return None


def evaluate(
    path: str,
    session: Optional[SessionToken],
    method: str = "GET",
) -> GateDecision:
    """
    Decide whether a request may proceed.

    Pure and deterministic: the result depends only on the arguments.

    Args:
        path: Request path
        session: Caller's session, or None when unauthenticated
        method: HTTP method

    Returns:
        ALLOW or RedirectTo(target)
    """
    session = _usable_session(session)
    route = classify_path(path, method)

    if route is RouteClass.PUBLIC:
        return ALLOW

    if route in DASHBOARD_ROUTE_ROLES:
        if session is None:
            return RedirectTo(LOGIN_PATH)
        if session.role is None:
            return RedirectTo(ROLE_SELECTION_PATH)
        required = DASHBOARD_ROUTE_ROLES[route]
        if required is not None and session.role != required:
            return RedirectTo(dashboard_for(session.role))
        return ALLOW

    if route is RouteClass.AUTH_ENTRY:
        if session is None:
            return ALLOW
        if session.role is None:
            return RedirectTo(ROLE_SELECTION_PATH)
        return RedirectTo(dashboard_for(session.role))

    if route is RouteClass.ROLE_SELECTION:
        if session is None:
            return RedirectTo(LOGIN_PATH)
        if session.role is not None:
            return RedirectTo(dashboard_for(session.role))
        return ALLOW

    if route is RouteClass.PROTECTED:
        return ALLOW if session is not None else RedirectTo(LOGIN_PATH)

    return ALLOW


class AuthGateMiddleware:
    """
    Applies `evaluate()` to every HTTP request.

    Must run inside AuthenticationMiddleware, which provides the session.
    """

    def __init__(self, app: Callable, redirect_status: int = REDIRECT_STATUS):
        """
        Initialize the gate.

        Args:
            app: ASGI application
            redirect_status: HTTP status used for redirects
        """
        self.app = app
        self.redirect_status = redirect_status

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", HOME_PATH)
        method = scope.get("method", "GET")
        decision = evaluate(path, scope.get("session_token"), method)

        if isinstance(decision, RedirectTo):
            logger.debug(f"AuthGate: {method} {path} -> {decision.target}")
            response = RedirectResponse(
                url=decision.target,
                status_code=self.redirect_status,
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
