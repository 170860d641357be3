"""Job posting schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from database.models.jobs import JobType


class JobCreate(BaseModel):
    """Schema for posting a job."""

    title: str = Field(min_length=1, max_length=200)
    company: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=200)
    salary: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    requirements: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    job_types: list[JobType] = Field(default_factory=list)

    @field_validator("title", "company", "location", "salary", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Reject values that are only whitespace."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class JobResponse(BaseModel):
    """Schema for job response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    employer_id: str
    title: str
    company: str
    location: str
    salary: str
    description: str
    requirements: list[str]
    benefits: list[str]
    skills: list[str]
    job_types: list[str]
    type: JobType
    is_active: bool
    created_at: datetime
    updated_at: datetime


class EmployerJobSummary(JobResponse):
    """An employer's job with its number of applications."""

    application_count: int = 0


class JobSummary(BaseModel):
    """Compact job reference embedded in applications."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    company: str
    location: str
    type: JobType
    is_active: bool
