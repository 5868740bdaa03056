"""
ReliefWatch - Error Taxonomy
Domain exceptions raised by the core and mapped to HTTP responses by the API.
"""

from typing import Any, Dict, Optional


class ReliefWatchError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    error_type: str = "internal"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "success": False,
            "message": self.message,
            "errorType": self.error_type,
        }
        if self.context:
            body["details"] = self.context
        return body


class ValidationError(ReliefWatchError):
    """A required field is missing or out of range."""

    status_code = 400
    error_type = "validation"

    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        if field:
            context["field"] = field
        super().__init__(message, **context)
        self.field = field


class AuthenticationError(ReliefWatchError):
    status_code = 401
    error_type = "authentication"


class ForbiddenError(ReliefWatchError):
    """Actor is not allowed to perform the operation."""

    status_code = 403
    error_type = "forbidden"


class NotFoundError(ReliefWatchError):
    status_code = 404
    error_type = "not_found"


class ConflictError(ReliefWatchError):
    """Transition on a terminal report, duplicate assignment or lost race."""

    status_code = 409
    error_type = "conflict"


class DependencyFailure(ReliefWatchError):
    """
    A best-effort side effect (fan-out, event publish) failed.

    Warning-only: the handler catches it and adds a warning flag to the
    outcome, so it is never rendered as an HTTP error response.
    """

    error_type = "dependency_failure"

    def __init__(self, message: str, created: int = 0, **context: Any):
        super().__init__(message, created=created, **context)
        self.created = created


class InternalError(ReliefWatchError):
    """Persistence or directory unavailable."""

    status_code = 500
    error_type = "internal"
