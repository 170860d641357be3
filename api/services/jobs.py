"""
Job service functions for API endpoints.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import JobNotFoundError
from database.models.applications import Application
from database.models.jobs import Job, JobType, PRIMARY_JOB_TYPE_ORDER

logger = logging.getLogger(__name__)


def pick_primary_job_type(job_types: List[str]) -> JobType:
    """Headline type of a posting: first of FULL_TIME, PART_TIME, CONTRACT, REMOTE present."""
    for job_type in PRIMARY_JOB_TYPE_ORDER:
        if job_type.value in job_types:
            return job_type
    return JobType.FULL_TIME


async def list_jobs(
    db: AsyncSession,
    offset: int = 0,
    limit: int = 10,
    search: Optional[str] = None,
    employer_id: Optional[str] = None,
) -> Tuple[List[Job], int]:
    """
    List active jobs, newest first.

    Returns:
        Tuple of (jobs for the page, total matching jobs)
    """
    conditions = [Job.is_active.is_(True)]

    if employer_id:
        conditions.append(Job.employer_id == employer_id)

    if search:
        pattern = f"%{search.lower()}%"
        conditions.append(
            or_(
                func.lower(Job.title).like(pattern),
                func.lower(Job.company).like(pattern),
                func.lower(Job.location).like(pattern),
                func.lower(Job.description).like(pattern),
            )
        )

    total = await db.scalar(select(func.count()).select_from(Job).where(*conditions))

    result = await db.execute(
        select(Job)
        .where(*conditions)
        .order_by(Job.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def get_job(db: AsyncSession, job_id: str) -> Optional[Job]:
    return await db.get(Job, job_id)


async def create_job(db: AsyncSession, employer_id: str, data: Dict[str, Any]) -> Job:
    """Create a job posting for an employer."""
    job_types = list(data.get("job_types") or [])

    job = Job(
        employer_id=employer_id,
        title=data["title"].strip(),
        company=data["company"].strip(),
        location=data["location"].strip(),
        salary=data["salary"].strip(),
        description=data["description"].strip(),
        requirements=[r.strip() for r in data.get("requirements") or [] if r.strip()],
        benefits=[b.strip() for b in data.get("benefits") or [] if b.strip()],
        skills=list(data.get("skills") or []),
        job_types=job_types,
        type=pick_primary_job_type(job_types),
    )
    db.add(job)
    await db.commit()
    await db.refresh(job)

    logger.info(f"Employer {employer_id} posted job {job.id}")
    return job


async def list_employer_jobs_with_counts(
    db: AsyncSession,
    employer_id: str,
) -> List[Tuple[Job, int]]:
    """All of an employer's jobs, newest first, with their application counts."""
    counts = (
        select(Application.job_id, func.count(Application.id).label("application_count"))
        .group_by(Application.job_id)
        .subquery()
    )
    result = await db.execute(
        select(Job, func.coalesce(counts.c.application_count, 0))
        .outerjoin(counts, counts.c.job_id == Job.id)
        .where(Job.employer_id == employer_id)
        .order_by(Job.created_at.desc())
    )
    return [(job, count) for job, count in result.all()]


async def require_job(db: AsyncSession, job_id: str) -> Job:
    job = await db.get(Job, job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job
