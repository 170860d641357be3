"""FastAPI dependencies for dependency injection."""

from typing import Callable, Optional
from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.engine import get_db, get_session_factory
from database.models.users import User, UserRole
from core.config import settings
from core.middleware.authentication import get_session_token
from core.security import SessionToken
from core.storage.local import LocalStorage
from api.services.resumes import PrimaryResumeManager
from api.services.users import get_user


def get_optional_session(request: Request) -> Optional[SessionToken]:
    """
    Get the caller's session if there is one.
    Useful for endpoints that work both authenticated and unauthenticated.
    """
    return get_session_token(request)


def require_session(
    session: Optional[SessionToken] = Depends(get_optional_session),
) -> SessionToken:
    """Require a valid session."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


def require_role(role: UserRole) -> Callable[..., SessionToken]:
    """
    Build a dependency that requires a session with the given role.

    Args:
        role: Role the caller must hold

    Returns:
        Dependency returning the caller's SessionToken
    """

    def dependency(session: SessionToken = Depends(require_session)) -> SessionToken:
        if session.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.value.title()} access required",
            )
        return session

    return dependency


require_employee = require_role(UserRole.EMPLOYEE)
require_employer = require_role(UserRole.EMPLOYER)


async def require_authenticated_user(
    session: SessionToken = Depends(require_session),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Load the caller's user record; a session for a deleted user is not valid."""
    user = await get_user(db, session.user_id)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account",
        )

    return user


def get_resume_manager(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PrimaryResumeManager:
    """PrimaryResumeManager bound to the application's session factory."""
    return PrimaryResumeManager(session_factory)


def get_storage() -> LocalStorage:
    """Local storage for resume files."""
    return LocalStorage(settings.upload_dir)

