"""
Page data endpoints.

These back the role-gated pages. AuthGateMiddleware has already applied the
redirect rules by the time a handler runs; the handlers only load the data
each page shows.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database.engine import get_db
from database.models.jobs import JobType
from database.models.users import User, UserRole
from core.config import settings
from core.middleware.authorization import REDIRECT_STATUS, ROLE_SELECTION_PATH, dashboard_for
from core.security import SessionToken
from api.dependencies import require_authenticated_user, require_employee, require_employer, require_session
from api.schemas.applications import ApplicationResponse
from api.schemas.auth import UserResponse
from api.schemas.dashboards import EmployeeDashboard, EmployerDashboard
from api.schemas.jobs import EmployerJobSummary, JobResponse
from api.schemas.resumes import ResumeResponse
from api.services import applications as application_service
from api.services import jobs as job_service
from api.services import resumes as resume_service

router = APIRouter(tags=["pages"])


@router.get("/auth/login", summary="Login Page")
async def login_page():
    """Where the sign-in form posts to."""
    return {
        "login_url": f"{settings.api_v1_prefix}/auth/login",
        "register_url": f"{settings.api_v1_prefix}/auth/register",
    }


@router.get("/auth/role-selection", summary="Role Selection Page")
async def role_selection_page(session: SessionToken = Depends(require_session)):
    return {
        "user_id": session.user_id,
        "roles": [role.value for role in UserRole],
        "submit_url": f"{settings.api_v1_prefix}/auth/role",
    }


@router.get("/dashboard", summary="Dashboard")
async def dashboard(session: SessionToken = Depends(require_session)):
    """Send the caller to their role's dashboard."""
    target = dashboard_for(session.role) if session.role else ROLE_SELECTION_PATH
    return RedirectResponse(url=target, status_code=REDIRECT_STATUS)


@router.get(
    "/dashboard/employee",
    response_model=EmployeeDashboard,
    summary="Employee Dashboard",
)
async def employee_dashboard(
    session: SessionToken = Depends(require_employee),
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    resumes = await resume_service.list_resumes(db, user.id)
    applications = await application_service.list_applications_for_employee(db, user.id)
    return EmployeeDashboard(
        user=UserResponse.model_validate(user),
        resumes=[ResumeResponse.model_validate(r) for r in resumes],
        applications=[ApplicationResponse.model_validate(a) for a in applications],
    )


@router.get(
    "/dashboard/employer",
    response_model=EmployerDashboard,
    summary="Employer Dashboard",
)
async def employer_dashboard(
    session: SessionToken = Depends(require_employer),
    user: User = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    jobs = await job_service.list_employer_jobs_with_counts(db, user.id)
    applications = await application_service.list_applications_for_employer(db, user.id)
    summary = await application_service.count_applications_by_status(db, user.id)
    return EmployerDashboard(
        user=UserResponse.model_validate(user),
        jobs=[
            EmployerJobSummary(
                **JobResponse.model_validate(job).model_dump(),
                application_count=count,
            )
            for job, count in jobs
        ],
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        status_summary=summary,
    )


@router.get("/post-job", summary="Post Job Page")
async def post_job_page(session: SessionToken = Depends(require_employer)):
    """Options for the job posting form."""
    return {
        "job_types": [job_type.value for job_type in JobType],
        "submit_url": f"{settings.api_v1_prefix}/jobs",
    }
