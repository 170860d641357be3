"""
Tests for the session-reading authentication middleware.

Tests:
- Token from cookie and from Authorization header
- Header takes precedence over cookie
- Expired, tampered and wrong-type tokens leave the caller unauthenticated
- Unknown role claims are rejected
"""

from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from core.config import settings
from core.middleware.authentication import AuthenticationMiddleware, get_session_token
from core.security import create_session_token
from database.models.users import UserRole


def make_token(user_id, role, **kwargs):
    return create_session_token(
        user_id, role, secret_key=settings.jwt_secret_key, algorithm=settings.jwt_algorithm, **kwargs
    )


@pytest.fixture
def client():
    app = FastAPI()

    @app.get("/whoami")
    async def whoami(request: Request):
        session = get_session_token(request)
        if session is None:
            return {"user_id": None, "role": None}
        return {
            "user_id": session.user_id,
            "role": session.role.value if session.role else None,
        }

    app.add_middleware(
        AuthenticationMiddleware,
        jwt_secret=settings.jwt_secret_key,
        jwt_algorithm=settings.jwt_algorithm,
        cookie_name="session",
    )
    return TestClient(app)


def _raw_token(**overrides) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "user-1",
        "role": "EMPLOYEE",
        "type": "session",
        "iat": now,
        "exp": now + timedelta(hours=1),
    }
    payload.update(overrides)
    return pyjwt.encode(payload, settings.jwt_secret_key, algorithm="HS256")


class TestTokenExtraction:
    """Test where the token is read from."""

    def test_no_token_is_unauthenticated(self, client):
        response = client.get("/whoami")

        assert response.json() == {"user_id": None, "role": None}

    def test_cookie(self, client):
        client.cookies.set("session", make_token("user-1", UserRole.EMPLOYER))

        response = client.get("/whoami")

        assert response.json() == {"user_id": "user-1", "role": "EMPLOYER"}

    def test_bearer_header(self, client):
        token = make_token("user-2", None)

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"user_id": "user-2", "role": None}

    def test_header_takes_precedence(self, client):
        client.cookies.set("session", make_token("cookie-user", UserRole.EMPLOYEE))
        token = make_token("header-user", UserRole.EMPLOYER)

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json()["user_id"] == "header-user"


class TestInvalidTokens:
    """Bad tokens never error; they just mean no session."""

    def test_expired(self, client):
        token = make_token("user-1", UserRole.EMPLOYEE, expires_in=-10)

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    def test_wrong_signature(self, client):
        token = pyjwt.encode(
            {"sub": "user-1", "type": "session", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "some-other-secret-that-is-long-enough-32b",
            algorithm="HS256",
        )

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json()["user_id"] is None

    def test_garbage(self, client):
        client.cookies.set("session", "not.a.jwt")

        response = client.get("/whoami")

        assert response.json()["user_id"] is None

    def test_wrong_token_type(self, client):
        token = _raw_token(type="refresh")

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json()["user_id"] is None

    def test_unknown_role(self, client):
        token = _raw_token(role="RECRUITER")

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"user_id": None, "role": None}

    def test_missing_subject(self, client):
        token = _raw_token(sub=None)

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json()["user_id"] is None
