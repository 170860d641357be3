from database.models.users import User, UserRole
from database.models.resumes import Resume, ExperienceLevel
from database.models.jobs import Job, JobType
from database.models.applications import Application, ApplicationStatus

__all__ = [
    "User",
    "UserRole",
    "Resume",
    "ExperienceLevel",
    "Job",
    "JobType",
    "Application",
    "ApplicationStatus",
]
