"""
Jobs Module

Job postings created by employers.
"""

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    DateTime,
    Text,
    JSON,
    Enum as SQLEnum,
    Index,
)
from database.engine import Base
from database.models.users import generate_id, utcnow
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.applications import Application
    from database.models.users import User


# ==================== Job Enums ===================== #
class JobType(str, PyEnum):
    """Job employment type."""

    FULL_TIME = "FULL_TIME"
    PART_TIME = "PART_TIME"
    CONTRACT = "CONTRACT"
    REMOTE = "REMOTE"
    FREELANCE = "FREELANCE"
    INTERNSHIP = "INTERNSHIP"


# Order in which the headline type is picked from a posting's job types
PRIMARY_JOB_TYPE_ORDER = (
    JobType.FULL_TIME,
    JobType.PART_TIME,
    JobType.CONTRACT,
    JobType.REMOTE,
)


class Job(Base):
    """A job posting."""

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_active_created", "is_active", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    employer_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    company: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    salary: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    requirements: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    benefits: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    skills: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    job_types: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    type: Mapped[JobType] = mapped_column(
        SQLEnum(JobType, native_enum=False, length=20),
        nullable=False,
        default=JobType.FULL_TIME,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    employer: Mapped["User"] = relationship("User", back_populates="jobs")
    applications: Mapped[list["Application"]] = relationship(
        "Application", back_populates="job", cascade="all, delete-orphan"
    )
