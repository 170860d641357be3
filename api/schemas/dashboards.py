"""Dashboard payloads."""

from pydantic import BaseModel, Field

from api.schemas.applications import ApplicationResponse
from api.schemas.auth import UserResponse
from api.schemas.jobs import EmployerJobSummary
from api.schemas.resumes import ResumeResponse


class EmployeeDashboard(BaseModel):
    user: UserResponse
    resumes: list[ResumeResponse]
    applications: list[ApplicationResponse]


class EmployerDashboard(BaseModel):
    user: UserResponse
    jobs: list[EmployerJobSummary]
    applications: list[ApplicationResponse]
    status_summary: dict[str, int] = Field(description="Application count per status")
