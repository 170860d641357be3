"""
Job posting endpoints.

Listing and reading jobs is public; posting requires an employer session.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from database.engine import get_db
from core.exceptions import JobNotFoundError
from core.security import AuditAction, ResourceType, SessionToken, log_audit_event
from api.dependencies import require_employer
from api.schemas.common import PaginatedResponse, PaginationParams
from api.schemas.jobs import JobCreate, JobResponse
from api.services import jobs as job_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get(
    "",
    response_model=PaginatedResponse[JobResponse],
    summary="List Jobs",
    description="Active jobs, newest first. Optional full-text search and employer filter.",
)
async def list_jobs(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, max_length=200, description="Search title, company, location and description"),
    employer_id: Optional[str] = Query(None, description="Only jobs posted by this employer"),
    db: AsyncSession = Depends(get_db),
):
    pagination = PaginationParams(page=page, page_size=page_size)
    jobs, total = await job_service.list_jobs(
        db,
        offset=pagination.offset,
        limit=pagination.page_size,
        search=search.strip() if search else None,
        employer_id=employer_id,
    )
    return PaginatedResponse[JobResponse].create(
        items=[JobResponse.model_validate(job) for job in jobs],
        total=total,
        pagination=pagination,
    )


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get Job",
)
async def get_job(
    job_id: str = Path(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.get_job(db, job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post Job",
    description="Create a job posting. Employers only.",
)
async def create_job(
    request: Request,
    data: JobCreate,
    session: SessionToken = Depends(require_employer),
    db: AsyncSession = Depends(get_db),
):
    job = await job_service.create_job(db, session.user_id, data.model_dump(mode="json"))

    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.JOB,
        resource_id=job.id,
        user_id=session.user_id,
        request_id=getattr(request.state, "request_id", None),
        details={"title": job.title, "type": job.type.value},
    )

    return job
