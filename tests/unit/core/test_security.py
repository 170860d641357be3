"""
Tests for core security utilities.

Tests:
- Password hashing and verification
- Session token creation and validation
- Audit logging and PII masking
- Edge cases and security scenarios
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import jwt as pyjwt
import pytest

from core.config import settings
from core.security import (
    AuditAction,
    ResourceType,
    SessionToken,
    create_session_token,
    decode_session_token,
    hash_password,
    log_audit_event,
    mask_pii,
    verify_password,
)
from database.models.users import UserRole


SECRET = "unit-test-secret-key-that-is-at-least-32-bytes"


class TestPasswordHashing:
    """Test password hashing and verification."""

    def test_hash_password(self):
        """Test password hashing."""
        password = "SecurePassword123!"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$2")

    def test_hash_password_different_each_time(self):
        """Salts differ between hashes of the same password."""
        assert hash_password("same-password") != hash_password("same-password")

    def test_verify_password_success(self):
        hashed = hash_password("SecurePassword123!")

        assert verify_password("SecurePassword123!", hashed) is True

    def test_verify_password_failure(self):
        hashed = hash_password("SecurePassword123!")

        assert verify_password("WrongPassword123!", hashed) is False

    def test_verify_against_malformed_hash(self):
        """A corrupted stored hash fails closed."""
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_password_hash_sql_injection(self):
        """Test that password hashing handles SQL injection attempts."""
        malicious_password = "'; DROP TABLE users; --"
        hashed = hash_password(malicious_password)

        assert verify_password(malicious_password, hashed) is True


class TestSessionTokens:
    """Test session token round trips and validation."""

    def test_round_trip_with_role(self):
        token = create_session_token("user-1", UserRole.EMPLOYER, SECRET)

        assert decode_session_token(token, SECRET) == SessionToken("user-1", UserRole.EMPLOYER)

    def test_round_trip_without_role(self):
        token = create_session_token("user-1", None, SECRET)

        assert decode_session_token(token, SECRET) == SessionToken("user-1", None)

    def test_claims(self):
        token = create_session_token("user-1", UserRole.EMPLOYEE, SECRET, expires_in=600)
        payload = pyjwt.decode(token, SECRET, algorithms=["HS256"])

        assert payload["sub"] == "user-1"
        assert payload["role"] == "EMPLOYEE"
        assert payload["type"] == "session"
        assert payload["exp"] - payload["iat"] == 600
        assert payload["jti"]

    def test_jti_unique(self):
        first = pyjwt.decode(create_session_token("u", None, SECRET), SECRET, algorithms=["HS256"])
        second = pyjwt.decode(create_session_token("u", None, SECRET), SECRET, algorithms=["HS256"])

        assert first["jti"] != second["jti"]

    def test_expired(self):
        token = create_session_token("user-1", None, SECRET, expires_in=-1)

        with pytest.raises(pyjwt.ExpiredSignatureError):
            decode_session_token(token, SECRET)

    def test_wrong_secret(self):
        token = create_session_token("user-1", None, SECRET)

        with pytest.raises(pyjwt.InvalidTokenError):
            decode_session_token(token, "a-different-secret-of-sufficient-length")

    def test_tampering_detected(self):
        token = create_session_token("user-1", UserRole.EMPLOYEE, SECRET)
        tampered = token[:-1] + ("X" if token[-1] != "X" else "Y")

        with pytest.raises(pyjwt.InvalidTokenError):
            decode_session_token(tampered, SECRET)

    def test_none_algorithm_rejected(self):
        payload = {
            "sub": "user-1",
            "type": "session",
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        token = pyjwt.encode(payload, None, algorithm="none")

        with pytest.raises(pyjwt.InvalidTokenError):
            decode_session_token(token, SECRET)

    def test_unknown_role_rejected(self):
        token = pyjwt.encode(
            {
                "sub": "user-1",
                "role": "ADMIN",
                "type": "session",
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(pyjwt.InvalidTokenError):
            decode_session_token(token, SECRET)

    def test_other_token_type_rejected(self):
        token = pyjwt.encode(
            {
                "sub": "user-1",
                "type": "refresh",
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(pyjwt.InvalidTokenError):
            decode_session_token(token, SECRET)

    def test_uses_configured_secret(self):
        token = create_session_token("user-1", None, settings.jwt_secret_key)

        assert decode_session_token(token, settings.jwt_secret_key).user_id == "user-1"


class TestAuditLogging:
    """Test audit records."""

    def test_mask_pii(self):
        masked = mask_pii({"email": "jane@example.com", "title": "Backend", "nested": {"phone": "555"}})

        assert masked["email"] == "j***[16]"
        assert masked["title"] == "Backend"
        assert masked["nested"]["phone"] == "5***[3]"

    def test_mask_pii_truncates_lists(self):
        assert len(mask_pii(list(range(20)))) == 5

    def test_log_audit_event(self):
        with patch("core.security.logger") as mock_logger:
            log_audit_event(
                action=AuditAction.SET_PRIMARY,
                resource_type=ResourceType.RESUME,
                resource_id="resume-1",
                user_id="user-1",
                request_id="req-1",
                details={"original_name": "cv.pdf"},
            )

        mock_logger.info.assert_called_once()
        record = json.loads(mock_logger.info.call_args[0][0])
        assert record["action"] == "SET_PRIMARY"
        assert record["resource_type"] == "RESUME"
        assert record["resource_id"] == "resume-1"
        assert record["request_id"] == "req-1"
        assert record["details"]["original_name"] != "cv.pdf"
