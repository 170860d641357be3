"""
Application service functions for API endpoints.
"""

from typing import Dict, List, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import (
    ApplicationNotFoundError,
    ConflictError,
    JobNotFoundError,
    ResumeNotFoundError,
)
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import Job
from database.models.resumes import Resume
from api.services.resumes import get_primary_resume

logger = logging.getLogger(__name__)


async def create_application(
    db: AsyncSession,
    employee_id: str,
    job_id: str,
    cover_letter: Optional[str] = None,
    resume_id: Optional[str] = None,
) -> Application:
    """
    Apply to a job.

    The application records which resume was used: the given one, or the
    applicant's primary resume when none is given.

    Raises:
        JobNotFoundError: If the job does not exist or is closed
        ResumeNotFoundError: If resume_id is not one of the applicant's resumes
        ConflictError: If the applicant already applied to this job
    """
    job = await db.get(Job, job_id)
    if job is None or not job.is_active:
        raise JobNotFoundError(job_id)

    existing = await db.execute(
        select(Application.id).where(
            Application.job_id == job_id,
            Application.employee_id == employee_id,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictError("You have already applied for this job")

    if resume_id:
        resume = await db.get(Resume, resume_id)
        if resume is None or resume.user_id != employee_id:
            raise ResumeNotFoundError(resume_id)
    else:
        resume = await get_primary_resume(db, employee_id)

    application = Application(
        job_id=job_id,
        employee_id=employee_id,
        cover_letter=cover_letter or None,
        resume_used=resume.label if resume else None,
    )
    db.add(application)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("You have already applied for this job")

    logger.info(f"User {employee_id} applied to job {job_id}")
    return await get_application(db, application.id)


async def get_application(db: AsyncSession, application_id: str) -> Optional[Application]:
    result = await db.execute(
        select(Application)
        .options(selectinload(Application.job), selectinload(Application.employee))
        .where(Application.id == application_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_applications_for_employee(
    db: AsyncSession,
    employee_id: str,
) -> List[Application]:
    result = await db.execute(
        select(Application)
        .options(selectinload(Application.job), selectinload(Application.employee))
        .where(Application.employee_id == employee_id)
        .order_by(Application.created_at.desc())
    )
    return list(result.scalars().all())


async def list_applications_for_employer(
    db: AsyncSession,
    employer_id: str,
) -> List[Application]:
    result = await db.execute(
        select(Application)
        .join(Application.job)
        .options(selectinload(Application.job), selectinload(Application.employee))
        .where(Job.employer_id == employer_id)
        .order_by(Application.created_at.desc())
    )
    return list(result.scalars().all())


async def update_application_status(
    db: AsyncSession,
    application_id: str,
    employer_id: str,
    status: ApplicationStatus,
) -> Application:
    """
    Move an application to a new status.

    Only the employer who owns the job may do this; anyone else gets
    ApplicationNotFoundError.
    """
    application = await get_application(db, application_id)
    if application is None or application.job.employer_id != employer_id:
        raise ApplicationNotFoundError(application_id)

    application.status = status
    await db.commit()

    logger.info(f"Application {application_id} moved to {status.value}")
    return await get_application(db, application_id)


async def count_applications_by_status(
    db: AsyncSession,
    employer_id: str,
) -> Dict[str, int]:
    """Per-status application counts across an employer's jobs."""
    result = await db.execute(
        select(Application.status, func.count(Application.id))
        .join(Application.job)
        .where(Job.employer_id == employer_id)
        .group_by(Application.status)
    )
    summary = {status.value: 0 for status in ApplicationStatus}
    for status, count in result.all():
        summary[status.value] = count
    return summary
