"""
API Services Layer.

Database operations used by the API endpoints.
"""

from api.services.resumes import (
    PrimaryResumeManager,
    list_resumes,
    get_resume,
    get_primary_resume,
    update_resume,
)

from api.services.jobs import (
    list_jobs,
    get_job,
    create_job,
    list_employer_jobs_with_counts,
)

from api.services.applications import (
    create_application,
    get_application,
    list_applications_for_employee,
    list_applications_for_employer,
    update_application_status,
    count_applications_by_status,
)

from api.services.users import (
    get_user,
    register_user,
    authenticate,
    set_role,
)

__all__ = [
    # Resumes
    "PrimaryResumeManager",
    "list_resumes",
    "get_resume",
    "get_primary_resume",
    "update_resume",
    # Jobs
    "list_jobs",
    "get_job",
    "create_job",
    "list_employer_jobs_with_counts",
    # Applications
    "create_application",
    "get_application",
    "list_applications_for_employee",
    "list_applications_for_employer",
    "update_application_status",
    "count_applications_by_status",
    # Users
    "get_user",
    "register_user",
    "authenticate",
    "set_role",
]
