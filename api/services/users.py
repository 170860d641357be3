"""
User service functions for API endpoints.
"""

from typing import Optional
from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, UserNotFoundError
from core.security import hash_password, verify_password
from database.models.users import User, UserRole

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: Optional[UserRole] = None,
    phone: Optional[str] = None,
    location: Optional[str] = None,
) -> User:
    """
    Create a user account.

    Raises:
        ConflictError: If the e-mail is already registered
    """
    if await get_user_by_email(db, email):
        raise ConflictError("User already exists")

    user = User(
        name=name.strip(),
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
        phone=phone or None,
        location=location or None,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration
        await db.rollback()
        raise ConflictError("User already exists")

    await db.refresh(user)
    logger.info(f"User {user.id} registered (role={user.role})")
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """Return the user for valid credentials, otherwise None."""
    user = await get_user_by_email(db, email)
    if not user or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt")
        return None
    if not user.is_active:
        return None

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    return user


async def set_role(db: AsyncSession, user_id: str, role: UserRole) -> User:
    """
    Set a user's role.

    Raises:
        UserNotFoundError: If the user does not exist
    """
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    user.role = role
    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user_id} role set to {role.value}")
    return user


PROFILE_FIELDS = ("name", "phone", "location", "bio")


async def update_profile(db: AsyncSession, user_id: str, updates: dict) -> User:
    """
    Update the editable profile fields. Other keys are ignored.

    Raises:
        UserNotFoundError: If the user does not exist
    """
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    for field in PROFILE_FIELDS:
        if field not in updates:
            continue
        value = updates[field]
        if field == "name":
            if value:
                user.name = value.strip()
        else:
            # Blank optional fields are cleared
            setattr(user, field, value.strip() if value and value.strip() else None)

    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user_id} profile updated")
    return user


async def change_password(
    db: AsyncSession,
    user_id: str,
    current_password: str,
    new_password: str,
) -> None:
    """
    Replace the password after verifying the current one.

    Raises:
        UserNotFoundError: If the user does not exist
        ValueError: If the current password is wrong or unchanged
    """
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    if not user.password_hash or not verify_password(current_password, user.password_hash):
        logger.warning(f"Rejected password change for user {user_id}")
        raise ValueError("Incorrect current password")
    if current_password == new_password:
        raise ValueError("Choose a different new password")

    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info(f"User {user_id} changed password")
