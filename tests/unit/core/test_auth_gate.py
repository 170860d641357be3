"""
Tests for the AuthGate routing rules.

Tests:
- Path classification (segment-aware prefixes, trailing slashes, methods)
- Public paths with and without a session
- Dashboard rules (no session, no role, wrong role)
- Login page and role selection redirects
- Protected pages
- Purity and redirect termination
- Middleware behaviour over HTTP
"""

import itertools

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.middleware.authorization import (
    ALLOW,
    AuthGateMiddleware,
    RedirectTo,
    RouteClass,
    classify_path,
    dashboard_for,
    evaluate,
    normalize_path,
)
from core.security import SessionToken
from database.models.users import UserRole


NO_SESSION = None
ROLELESS = SessionToken(user_id="u1", role=None)
EMPLOYEE = SessionToken(user_id="u2", role=UserRole.EMPLOYEE)
EMPLOYER = SessionToken(user_id="u3", role=UserRole.EMPLOYER)

ALL_SESSIONS = [NO_SESSION, ROLELESS, EMPLOYEE, EMPLOYER]

PUBLIC_PATHS = [
    "/",
    "/jobs",
    "/jobs/",
    "/jobs/abc-123",
    "/auth/register",
    "/auth/register/employer",
    "/api/v1/auth/login",
    "/api/v1/auth/logout",
    "/static/app.css",
    "/uploads/resumes/jane_mid_level_1.pdf",
    "/favicon.ico",
    "/health",
    "/ready",
    "/docs",
    "/openapi.json",
]

SAMPLE_PATHS = PUBLIC_PATHS + [
    "/auth/login",
    "/auth/role-selection",
    "/dashboard",
    "/dashboard/employee",
    "/dashboard/employee/resumes",
    "/dashboard/employer",
    "/dashboard/employer/jobs/1",
    "/dashboard/settings",
    "/dashboard-admin",
    "/post-job",
    "/profile",
    "/api/v1/resumes",
    "",
]


class TestNormalizePath:
    """Test path normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("", "/"),
        ("/", "/"),
        ("///", "/"),
        ("/jobs/", "/jobs"),
        ("/dashboard/employee//", "/dashboard/employee"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_path(raw) == expected


class TestClassifyPath:
    """Test static route classification."""

    @pytest.mark.parametrize("path,expected", [
        ("/", RouteClass.PUBLIC),
        ("/jobs", RouteClass.PUBLIC),
        ("/jobs/42", RouteClass.PUBLIC),
        ("/auth/login", RouteClass.AUTH_ENTRY),
        ("/auth/login/", RouteClass.AUTH_ENTRY),
        ("/auth/role-selection", RouteClass.ROLE_SELECTION),
        ("/dashboard/employee", RouteClass.DASHBOARD_EMPLOYEE),
        ("/dashboard/employee/applications", RouteClass.DASHBOARD_EMPLOYEE),
        ("/dashboard/employer", RouteClass.DASHBOARD_EMPLOYER),
        ("/dashboard", RouteClass.DASHBOARD),
        ("/dashboard/other", RouteClass.DASHBOARD),
        ("/post-job", RouteClass.PROTECTED),
        ("/post-job/preview", RouteClass.PROTECTED),
        ("/profile", RouteClass.OTHER),
    ])
    def test_classification(self, path, expected):
        assert classify_path(path) == expected

    def test_prefix_matching_is_segment_aware(self):
        """A shared string prefix is not a sub-path."""
        assert classify_path("/jobsearch") == RouteClass.OTHER
        assert classify_path("/dashboard/employees") == RouteClass.DASHBOARD
        assert classify_path("/post-jobs") == RouteClass.OTHER

    @pytest.mark.parametrize("path", ["/dashboards", "/dashboard-admin", "/dashboardx/settings"])
    def test_any_dashboard_prefix_is_a_dashboard(self, path):
        assert classify_path(path) == RouteClass.DASHBOARD

    def test_dashboard_prefix_without_session(self):
        assert evaluate("/dashboard-admin", None) == RedirectTo("/auth/login")
        assert evaluate("/dashboards", ROLELESS) == RedirectTo("/auth/role-selection")
        assert evaluate("/dashboard-admin", EMPLOYER) == ALLOW

    def test_job_api_public_only_for_reads(self):
        assert classify_path("/api/v1/jobs", "GET") == RouteClass.PUBLIC
        assert classify_path("/api/v1/jobs/1", "head") == RouteClass.PUBLIC
        assert classify_path("/api/v1/jobs", "POST") == RouteClass.OTHER


class TestPublicPaths:
    """Public paths are allowed regardless of session."""

    @pytest.mark.parametrize(
        "path,session",
        list(itertools.product(PUBLIC_PATHS, ALL_SESSIONS)),
    )
    def test_public_always_allowed(self, path, session):
        assert evaluate(path, session) == ALLOW


class TestDashboardRules:
    """Test dashboard gating."""

    @pytest.mark.parametrize("path", [
        "/dashboard", "/dashboard/employee", "/dashboard/employer",
    ])
    def test_unauthenticated_redirects_to_login(self, path):
        assert evaluate(path, NO_SESSION) == RedirectTo("/auth/login")

    @pytest.mark.parametrize("path", [
        "/dashboard", "/dashboard/employee", "/dashboard/employer",
    ])
    def test_roleless_redirects_to_role_selection(self, path):
        assert evaluate(path, ROLELESS) == RedirectTo("/auth/role-selection")

    def test_roleless_never_sent_to_a_dashboard(self):
        for user_id in ["a", "b", "c"]:
            session = SessionToken(user_id=user_id, role=None)
            decision = evaluate("/dashboard/employee", session)
            assert decision == RedirectTo("/auth/role-selection")

    def test_employee_on_employer_dashboard(self):
        assert evaluate("/dashboard/employer", EMPLOYEE) == RedirectTo("/dashboard/employee")

    def test_employer_on_employee_dashboard(self):
        assert evaluate("/dashboard/employee/resumes", EMPLOYER) == RedirectTo("/dashboard/employer")

    def test_matching_role_allowed(self):
        assert evaluate("/dashboard/employee", EMPLOYEE) == ALLOW
        assert evaluate("/dashboard/employer", EMPLOYER) == ALLOW

    def test_generic_dashboard_allowed_with_role(self):
        """The /dashboard handler forwards to the role's dashboard itself."""
        assert evaluate("/dashboard", EMPLOYEE) == ALLOW
        assert evaluate("/dashboard", EMPLOYER) == ALLOW


class TestLoginPage:
    """Test the login entry point."""

    def test_unauthenticated_allowed(self):
        assert evaluate("/auth/login", NO_SESSION) == ALLOW

    def test_roleless_session_goes_to_role_selection(self):
        session = SessionToken(user_id="u1", role=None)
        assert evaluate("/auth/login", session) == RedirectTo("/auth/role-selection")

    def test_session_with_role_goes_to_dashboard(self):
        assert evaluate("/auth/login", EMPLOYEE) == RedirectTo("/dashboard/employee")
        assert evaluate("/auth/login", EMPLOYER) == RedirectTo("/dashboard/employer")


class TestRoleSelection:
    """Test the role selection page."""

    def test_unauthenticated_redirects_to_login(self):
        assert evaluate("/auth/role-selection", NO_SESSION) == RedirectTo("/auth/login")

    def test_roleless_allowed(self):
        assert evaluate("/auth/role-selection", ROLELESS) == ALLOW

    def test_role_already_chosen(self):
        assert evaluate("/auth/role-selection", EMPLOYER) == RedirectTo("/dashboard/employer")


class TestProtectedPages:
    """Test other protected pages."""

    def test_requires_session(self):
        assert evaluate("/post-job", NO_SESSION) == RedirectTo("/auth/login")

    @pytest.mark.parametrize("session", [ROLELESS, EMPLOYEE, EMPLOYER])
    def test_any_session_allowed(self, session):
        assert evaluate("/post-job", session) == ALLOW

    def test_default_allows(self):
        assert evaluate("/profile", NO_SESSION) == ALLOW
        assert evaluate("/api/v1/resumes", NO_SESSION, "POST") == ALLOW


class TestMalformedSessions:
    """Anything that is not a usable session counts as unauthenticated."""

    @pytest.mark.parametrize("session", [
        {"userId": "u1", "role": "EMPLOYEE"},
        "not-a-session",
        SessionToken(user_id="", role=UserRole.EMPLOYEE),
    ])
    def test_treated_as_unauthenticated(self, session):
        assert evaluate("/dashboard/employee", session) == RedirectTo("/auth/login")
        assert evaluate("/", session) == ALLOW


class TestGateProperties:
    """Properties over every sample path and session."""

    @pytest.mark.parametrize(
        "path,session",
        list(itertools.product(SAMPLE_PATHS, ALL_SESSIONS)),
    )
    def test_deterministic(self, path, session):
        assert evaluate(path, session) == evaluate(path, session)

    @pytest.mark.parametrize(
        "path,session",
        list(itertools.product(SAMPLE_PATHS, ALL_SESSIONS)),
    )
    def test_one_redirect_reaches_an_allowed_page(self, path, session):
        """Redirect targets are allowed for the same session (no loops)."""
        decision = evaluate(path, session)
        if isinstance(decision, RedirectTo):
            assert decision.target != normalize_path(path)
            assert evaluate(decision.target, session) == ALLOW

    def test_dashboard_for_each_role(self):
        assert dashboard_for(UserRole.EMPLOYEE) == "/dashboard/employee"
        assert dashboard_for(UserRole.EMPLOYER) == "/dashboard/employer"


class TestAuthGateMiddleware:
    """Test the middleware over HTTP."""

    @pytest.fixture
    def make_client(self):
        def _make(session):
            app = FastAPI()

            @app.get("/dashboard/employee")
            async def employee_dashboard():
                return {"page": "employee"}

            @app.get("/jobs")
            async def jobs():
                return {"page": "jobs"}

            app.add_middleware(AuthGateMiddleware)

            # Stand-in for the authentication middleware
            @app.middleware("http")
            async def inject_session(request, call_next):
                request.scope["session_token"] = session
                return await call_next(request)

            return TestClient(app, follow_redirects=False)

        return _make

    def test_redirect_uses_307(self, make_client):
        response = make_client(None).get("/dashboard/employee")

        assert response.status_code == 307
        assert response.headers["location"] == "/auth/login"

    def test_wrong_role_redirect(self, make_client):
        response = make_client(EMPLOYER).get("/dashboard/employee")

        assert response.status_code == 307
        assert response.headers["location"] == "/dashboard/employer"

    def test_allowed_request_reaches_handler(self, make_client):
        response = make_client(EMPLOYEE).get("/dashboard/employee")

        assert response.status_code == 200
        assert response.json() == {"page": "employee"}

    def test_public_page_without_session(self, make_client):
        response = make_client(None).get("/jobs")

        assert response.status_code == 200
