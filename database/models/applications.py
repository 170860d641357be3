from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    DateTime,
    Text,
    Enum as SQLEnum,
    UniqueConstraint,
)
from database.engine import Base
from database.models.users import generate_id, utcnow
from datetime import datetime
from enum import Enum as PyEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.jobs import Job
    from database.models.users import User


class ApplicationStatus(str, PyEnum):
    PENDING = "PENDING"
    REVIEWED = "REVIEWED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Application(Base):
    """A job seeker's application to a job. One per (job, employee)."""

    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("job_id", "employee_id", name="uq_applications_job_employee"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    job_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    employee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    cover_letter: Mapped[str | None] = mapped_column(Text)
    # Label of the resume at the time of applying; survives resume deletion
    resume_used: Mapped[str | None] = mapped_column(String(300))
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=20),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    job: Mapped["Job"] = relationship("Job", back_populates="applications")
    employee: Mapped["User"] = relationship("User", back_populates="applications")
