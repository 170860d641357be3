"""
Job application endpoints.

Employees apply and see their own applications; employers see and review
the applications to their jobs.
"""

import logging
from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from database.engine import get_db
from database.models.users import UserRole
from core.security import AuditAction, ResourceType, SessionToken, log_audit_event
from api.dependencies import require_employee, require_employer, require_session
from api.schemas.applications import (
    ApplicationCreate,
    ApplicationResponse,
    ApplicationStatusUpdate,
)
from api.services import applications as application_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply",
    description="Apply to a job. Employees only; one application per job.",
)
async def apply(
    request: Request,
    data: ApplicationCreate,
    session: SessionToken = Depends(require_employee),
    db: AsyncSession = Depends(get_db),
):
    application = await application_service.create_application(
        db,
        employee_id=session.user_id,
        job_id=data.job_id,
        cover_letter=data.cover_letter,
        resume_id=data.resume_id,
    )

    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=session.user_id,
        request_id=getattr(request.state, "request_id", None),
        details={"job_id": data.job_id, "has_resume": application.resume_used is not None},
    )

    return application


@router.get(
    "",
    response_model=list[ApplicationResponse],
    summary="List Applications",
    description="Employees get their applications; employers get applications to their jobs.",
)
async def list_applications(
    session: SessionToken = Depends(require_session),
    db: AsyncSession = Depends(get_db),
):
    if session.role == UserRole.EMPLOYER:
        return await application_service.list_applications_for_employer(db, session.user_id)
    if session.role == UserRole.EMPLOYEE:
        return await application_service.list_applications_for_employee(db, session.user_id)
    return []


@router.patch(
    "/{application_id}/status",
    response_model=ApplicationResponse,
    summary="Update Application Status",
    description="Move an application to PENDING, REVIEWED, ACCEPTED or REJECTED.",
)
async def update_status(
    request: Request,
    data: ApplicationStatusUpdate,
    application_id: str = Path(..., description="Application ID"),
    session: SessionToken = Depends(require_employer),
    db: AsyncSession = Depends(get_db),
):
    application = await application_service.update_application_status(
        db,
        application_id=application_id,
        employer_id=session.user_id,
        status=data.status,
    )

    log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application_id,
        user_id=session.user_id,
        request_id=getattr(request.state, "request_id", None),
        details={"status": data.status.value},
    )

    return application
