"""Error taxonomy shared by the auth layer, stores, and services.

Learn: Services raise these instead of HTTPException so they stay usable
outside FastAPI (CLI, tests). Each class carries its HTTP status; the
handlers in exception_handlers.py turn them into JSON responses.
"""

from typing import Optional


class TaskTrackError(Exception):
    """Base class for all expected failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(TaskTrackError):
    """Missing, invalid or expired token, or the account no longer exists."""

    status_code = 401
    default_message = "Not authorized"


class Forbidden(TaskTrackError):
    """Authenticated, but the role or ownership check failed."""

    status_code = 403
    default_message = "Not authorized to access this resource"


class NotFound(TaskTrackError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(TaskTrackError):
    status_code = 409
    default_message = "Resource already exists"


class ValidationFailed(TaskTrackError):
    status_code = 422
    default_message = "Validation failed"


class StoreFailure(TaskTrackError):
    """An adapter's I/O failed. Logged, answered generically, never retried."""

    status_code = 500
    default_message = "Store operation failed"
