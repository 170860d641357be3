"""
Authentication endpoints.

Provides:
- Email/password registration and login
- Role selection for accounts created without a role
- Logout
- Current user profile, profile edits and password change

Each successful sign-in sets the session cookie read by the
authentication middleware and returns the same token for bearer use.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from database.engine import get_db
from database.models.users import User, UserRole
from core.config import settings
from core.middleware.authorization import ROLE_SELECTION_PATH, dashboard_for
from core.security import (
    AuditAction,
    ResourceType,
    SessionToken,
    create_session_token,
    log_audit_event,
)
from api.dependencies import require_authenticated_user, require_session
from api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    RoleSelectionRequest,
    SessionResponse,
    UserResponse,
)
from api.schemas.common import MessageResponse
from api.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def landing_page(role: Optional[UserRole]) -> str:
    """Where a freshly signed-in user goes next."""
    if role is None:
        return ROLE_SELECTION_PATH
    return dashboard_for(role)


def issue_session(response: Response, user: User) -> SessionResponse:
    """Create a session token, set it as a cookie and build the response body."""
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_in=settings.session_max_age_seconds,
    )
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )
    return SessionResponse(
        user=UserResponse.model_validate(user),
        access_token=token,
        redirect_to=landing_page(user.role),
    )


@router.post(
    "/register",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account and sign in. Role may be chosen now or later.",
)
async def register(
    request: Request,
    response: Response,
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create the account; a duplicate e-mail returns 409."""
    user = await user_service.register_user(
        db,
        name=data.name,
        email=data.email,
        password=data.password,
        role=data.role,
        phone=data.phone,
        location=data.location,
    )

    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        request_id=getattr(request.state, "request_id", None),
        details={"role": user.role.value if user.role else None},
    )

    return issue_session(response, user)


@router.post(
    "/login",
    response_model=SessionResponse,
    summary="Login",
    description="Sign in with e-mail and password.",
)
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.authenticate(db, data.email, data.password)

    if user is None:
        # Generic message to prevent email enumeration
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    log_audit_event(
        action=AuditAction.LOGIN,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        request_id=getattr(request.state, "request_id", None),
    )

    return issue_session(response, user)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
)
async def logout(response: Response):
    """Clear the session cookie."""
    response.delete_cookie(key=settings.session_cookie_name, path="/")
    return MessageResponse(message="Logged out")


@router.post(
    "/role",
    response_model=SessionResponse,
    summary="Select Role",
    description="Set the caller's role (EMPLOYEE or EMPLOYER) and re-issue the session.",
)
async def select_role(
    request: Request,
    response: Response,
    data: RoleSelectionRequest,
    session: SessionToken = Depends(require_session),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.set_role(db, session.user_id, data.role)

    log_audit_event(
        action=AuditAction.ROLE_CHANGE,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        request_id=getattr(request.state, "request_id", None),
        details={
            "from": session.role.value if session.role else None,
            "to": data.role.value,
        },
    )

    return issue_session(response, user)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current User",
)
async def get_me(current_user: User = Depends(require_authenticated_user)):
    return current_user


@router.patch(
    "/me",
    response_model=UserResponse,
    summary="Update Profile",
    description="Edit name, phone, location and bio. Omitted fields are left unchanged.",
)
async def update_me(
    request: Request,
    data: ProfileUpdate,
    session: SessionToken = Depends(require_session),
    db: AsyncSession = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)
    user = await user_service.update_profile(db, session.user_id, updates)

    log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        request_id=getattr(request.state, "request_id", None),
        details={"fields": sorted(updates)},
    )

    return user


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change Password",
    description="Verify the current password and replace it.",
)
async def change_password(
    request: Request,
    data: ChangePasswordRequest,
    session: SessionToken = Depends(require_session),
    db: AsyncSession = Depends(get_db),
):
    try:
        await user_service.change_password(
            db, session.user_id, data.current_password, data.new_password
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.USER,
        resource_id=session.user_id,
        user_id=session.user_id,
        request_id=getattr(request.state, "request_id", None),
        details={"fields": ["password"]},
    )

    return MessageResponse(message="Password changed")
