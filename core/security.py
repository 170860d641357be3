"""
Security utilities: password hashing, session tokens and audit logging.

Session tokens are HS256 JWTs carrying the user id and role. They are issued
on register/login/role change and read back by the authentication middleware.
"""

import json
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set

import bcrypt
import jwt

from database.models.users import UserRole

logger = logging.getLogger("security.audit")

SESSION_TOKEN_TYPE = "session"


@dataclass(frozen=True)
class SessionToken:
    """Identity carried by a verified session token."""

    user_id: str
    role: Optional[UserRole] = None


# ==================== Passwords ==================== #

def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt.

    Args:
        password: Plain text password

    Returns:
        bcrypt hash as a string
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check a plain text password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


# ==================== Session tokens ==================== #

def create_session_token(
    user_id: str,
    role: Optional[UserRole],
    secret_key: str,
    algorithm: str = "HS256",
    expires_in: int = 24 * 60 * 60,
) -> str:
    """
    Create a signed session token.

    Args:
        user_id: ID of the authenticated user
        role: User role, or None before role selection
        secret_key: Signing secret
        algorithm: JWT algorithm
        expires_in: Lifetime in seconds

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role.value if role else None,
        "type": SESSION_TOKEN_TYPE,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_session_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> SessionToken:
    """
    Verify a session token and extract its identity.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the signature, type or claims are invalid
    """
    payload = jwt.decode(
        token,
        secret_key,
        algorithms=[algorithm],
        options={"require": ["sub", "exp"]},
    )

    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise jwt.InvalidTokenError("Not a session token")

    raw_role = payload.get("role")
    if raw_role is None:
        role = None
    else:
        try:
            role = UserRole(raw_role)
        except ValueError:
            raise jwt.InvalidTokenError(f"Unknown role: {raw_role!r}")

    return SessionToken(user_id=payload["sub"], role=role)


# ==================== Audit logging ==================== #

class AuditAction(str, Enum):
    """Audit log action types."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SET_PRIMARY = "SET_PRIMARY"
    LOGIN = "LOGIN"
    ROLE_CHANGE = "ROLE_CHANGE"


class ResourceType(str, Enum):
    """Resource types for audit logging."""
    RESUME = "RESUME"
    JOB = "JOB"
    APPLICATION = "APPLICATION"
    USER = "USER"


# PII fields that should be masked in logs
PII_FIELDS: Set[str] = {
    "email", "phone", "name", "location", "original_name",
}


def mask_pii(data: Any, depth: int = 0) -> Any:
    """
    Recursively mask PII fields in data structures.

    Args:
        data: Data to mask (dict, list, or primitive)
        depth: Current recursion depth (max 10)

    Returns:
        Data with PII fields masked
    """
    if depth > 10:
        return "[MAX_DEPTH]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if key.lower() in PII_FIELDS:
                if isinstance(value, str) and len(value) > 0:
                    masked[key] = f"{value[0]}***[{len(value)}]"
                else:
                    masked[key] = "[MASKED]"
            else:
                masked[key] = mask_pii(value, depth + 1)
        return masked
    elif isinstance(data, list):
        return [mask_pii(item, depth + 1) for item in data[:5]]
    else:
        return data


def log_audit_event(
    action: AuditAction,
    resource_type: ResourceType,
    resource_id: Optional[str] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Emit a structured audit record for a state-changing operation."""
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": "AUDIT",
        "action": action.value,
        "resource_type": resource_type.value,
        "resource_id": str(resource_id) if resource_id else None,
        "user_id": user_id,
        "request_id": request_id,
        "details": mask_pii(details) if details else None,
    }
    logger.info(json.dumps(event))
