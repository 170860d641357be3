"""
Domain exceptions shared by services and the error handling middleware.
"""


class NotFoundError(Exception):
    """Raised when a referenced record does not exist."""

    resource = "Resource"

    def __init__(self, resource_id=None, message: str | None = None):
        self.resource_id = resource_id
        if message is None:
            message = f"{self.resource} not found"
        super().__init__(message)


class ResumeNotFoundError(NotFoundError):
    resource = "Resume"


class UserNotFoundError(NotFoundError):
    resource = "User"


class JobNotFoundError(NotFoundError):
    resource = "Job"


class ApplicationNotFoundError(NotFoundError):
    resource = "Application"


class ConflictError(Exception):
    """Raised when a write would duplicate an existing record."""
    pass


class StorageError(Exception):
    """Raised when a transaction or query against the database fails."""
    pass
