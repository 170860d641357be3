"""Job application schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from database.models.applications import ApplicationStatus
from api.schemas.jobs import JobSummary


class ApplicationCreate(BaseModel):
    """Schema for applying to a job."""

    job_id: str
    cover_letter: Optional[str] = Field(None, max_length=10000)
    resume_id: Optional[str] = Field(
        None, description="Resume to attach; defaults to the applicant's primary resume"
    )


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


class ApplicantSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None


class ApplicationResponse(BaseModel):
    """Schema for application response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    job_id: str
    employee_id: str
    cover_letter: Optional[str] = None
    resume_used: Optional[str] = None
    status: ApplicationStatus
    created_at: datetime
    updated_at: datetime
    job: Optional[JobSummary] = None
    employee: Optional[ApplicantSummary] = None
