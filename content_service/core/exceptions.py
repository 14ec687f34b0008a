"""
Error taxonomy for the content service.

Every error carries a machine-checkable ``kind`` and the HTTP status used
when it reaches the API layer.
"""
from typing import Any, Dict, Optional


class ContentServiceError(Exception):
    """Base class for errors surfaced to callers."""

    kind: str = "error"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(ContentServiceError):
    """Bad input shape or range, or an invalid state transition."""

    kind = "validation_error"
    status_code = 400


class TagValidationError(ValidationError):
    """A supplied tag is malformed, missing or inactive."""

    kind = "tag_validation_error"


class DependencyError(ValidationError):
    """The tag service could not be reached or answered with an error."""

    kind = "dependency_error"


class NotFoundError(ContentServiceError):
    kind = "not_found"
    status_code = 404


class PermissionDeniedError(ContentServiceError):
    kind = "permission_denied"
    status_code = 403


class AuthenticationError(ContentServiceError):
    kind = "authentication_required"
    status_code = 401


class ConflictError(ContentServiceError):
    """A write kept colliding on a unique key after all retries."""

    kind = "conflict"
    status_code = 409
