"""
Resume service functions for API endpoints.

`PrimaryResumeManager` owns every write that can change which resume is a
user's primary one. Each of its operations runs in a single transaction that
first locks the owning user's row, so concurrent writers for the same user
are serialised while different users proceed independently.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import ResumeNotFoundError, StorageError, UserNotFoundError
from database.engine import SQLITE_IMMEDIATE
from database.models.resumes import Resume
from database.models.users import User

logger = logging.getLogger(__name__)

# Columns the manager decides; callers cannot set them through attrs
MANAGED_FIELDS = frozenset({"id", "user_id", "is_primary"})

UPDATABLE_FIELDS = frozenset({"title", "description", "experience_level", "is_active"})


class PrimaryResumeManager:
    """
    Keeps at most one primary resume per user.

    - `create` makes the first resume of a user primary.
    - `promote` demotes the user's other resumes and marks one primary.
    - `delete` removes a resume and, if it was primary, promotes the most
      recently created remaining resume.

    `ResumeNotFoundError`/`UserNotFoundError` and `StorageError` propagate to
    the caller; nothing is retried here.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    # Writer lock from BEGIN on SQLite; ignored elsewhere
                    await session.connection(execution_options={SQLITE_IMMEDIATE: True})
                    yield session
        except SQLAlchemyError as exc:
            logger.error(f"Resume {operation} failed", exc_info=True)
            raise StorageError(f"Resume {operation} failed") from exc

    async def _lock_user(self, session: AsyncSession, user_id: str) -> None:
        """Take the per-user serialisation lock (row lock on the owning user)."""
        result = await session.execute(
            select(User.id).where(User.id == user_id).with_for_update()
        )
        if result.scalar_one_or_none() is None:
            raise UserNotFoundError(user_id)

    async def create(self, user_id: str, attrs: Dict[str, Any]) -> Resume:
        """
        Insert a resume for a user.

        The resume is primary iff the user owned no resumes when the
        transaction acquired the user lock.

        Raises:
            UserNotFoundError: If the user does not exist
            StorageError: On any database failure
        """
        fields = {k: v for k, v in attrs.items() if k not in MANAGED_FIELDS}

        async with self._transaction("create") as session:
            await self._lock_user(session, user_id)

            existing = await session.scalar(
                select(func.count()).select_from(Resume).where(Resume.user_id == user_id)
            )
            resume = Resume(user_id=user_id, is_primary=existing == 0, **fields)
            session.add(resume)
            await session.flush()

        logger.info(
            f"Created resume {resume.id} for user {user_id} (primary={resume.is_primary})"
        )
        return resume

    async def promote(self, resume_id: str) -> None:
        """
        Make a resume its owner's primary resume.

        Raises:
            ResumeNotFoundError: If the resume does not exist
            StorageError: On any database failure
        """
        async with self._transaction("promote") as session:
            user_id = await session.scalar(
                select(Resume.user_id).where(Resume.id == resume_id)
            )
            if user_id is None:
                raise ResumeNotFoundError(resume_id)

            await self._lock_user(session, user_id)

            await session.execute(
                update(Resume)
                .where(Resume.user_id == user_id, Resume.is_primary.is_(True))
                .values(is_primary=False)
            )
            result = await session.execute(
                update(Resume)
                .where(Resume.id == resume_id, Resume.user_id == user_id)
                .values(is_primary=True)
            )
            # Deleted between the lookup and the lock
            if result.rowcount == 0:
                raise ResumeNotFoundError(resume_id)

        logger.info(f"Resume {resume_id} is now primary for user {user_id}")

    async def delete(self, resume_id: str) -> Resume:
        """
        Delete a resume, handing primary status to the newest remaining one.

        Returns:
            The deleted resume (detached), so callers can clean up its file

        Raises:
            ResumeNotFoundError: If the resume does not exist
            StorageError: On any database failure
        """
        async with self._transaction("delete") as session:
            user_id = await session.scalar(
                select(Resume.user_id).where(Resume.id == resume_id)
            )
            if user_id is None:
                raise ResumeNotFoundError(resume_id)

            await self._lock_user(session, user_id)

            # Re-read under the lock; is_primary may have changed meanwhile
            resume = await session.get(Resume, resume_id, populate_existing=True)
            if resume is None:
                raise ResumeNotFoundError(resume_id)

            was_primary = resume.is_primary
            await session.delete(resume)
            await session.flush()

            successor = None
            if was_primary:
                successor = await session.scalar(
                    select(Resume)
                    .where(Resume.user_id == user_id)
                    .order_by(Resume.created_at.desc(), Resume.id.desc())
                    .limit(1)
                )
                if successor is not None:
                    successor.is_primary = True
                    await session.flush()

        if successor is not None:
            logger.info(
                f"Deleted primary resume {resume_id}; resume {successor.id} promoted"
            )
        else:
            logger.info(f"Deleted resume {resume_id} for user {user_id}")
        return resume


async def list_resumes(db: AsyncSession, user_id: str) -> List[Resume]:
    """List a user's resumes, primary first, then newest first."""
    result = await db.execute(
        select(Resume)
        .where(Resume.user_id == user_id)
        .order_by(Resume.is_primary.desc(), Resume.created_at.desc())
    )
    return list(result.scalars().all())


async def get_resume(db: AsyncSession, resume_id: str) -> Optional[Resume]:
    return await db.get(Resume, resume_id)


async def get_primary_resume(db: AsyncSession, user_id: str) -> Optional[Resume]:
    result = await db.execute(
        select(Resume).where(Resume.user_id == user_id, Resume.is_primary.is_(True))
    )
    return result.scalar_one_or_none()


async def update_resume(
    db: AsyncSession,
    resume_id: str,
    updates: Dict[str, Any],
) -> Resume:
    """
    Update a resume's descriptive fields.

    Primary status is never changed here; use `PrimaryResumeManager.promote`.
    """
    resume = await db.get(Resume, resume_id)
    if resume is None:
        raise ResumeNotFoundError(resume_id)

    for field, value in updates.items():
        if field in UPDATABLE_FIELDS:
            setattr(resume, field, value)

    await db.commit()
    await db.refresh(resume)
    return resume
