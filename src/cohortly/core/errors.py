"""
Error Taxonomy

Every failure a handler can report to a caller. Each error carries the HTTP
status it is rendered with and a stable machine-readable kind.
"""

from __future__ import annotations

from fastapi import status


class CohortlyError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        """Response body for this error."""
        return {"error": self.message, "kind": self.kind}


class Unauthenticated(CohortlyError):
    """No credential, or the credential failed verification."""

    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "unauthenticated"
    default_message = "Not authenticated"


class Forbidden(CohortlyError):
    """Caller's role or ownership does not permit the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    kind = "forbidden"
    default_message = "Insufficient permissions"


class NotFound(CohortlyError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"
    default_message = "Not found"


class ValidationError(CohortlyError):
    """Missing or malformed request field."""

    status_code = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"
    default_message = "Invalid request"


class InvalidState(CohortlyError):
    """Entity is not in a state that allows the requested transition."""

    status_code = status.HTTP_409_CONFLICT
    kind = "invalid_state"
    default_message = "Invalid state for this operation"


class DuplicateApplication(CohortlyError):
    status_code = status.HTTP_409_CONFLICT
    kind = "duplicate_application"
    default_message = "You have already applied to this program"


class DuplicateEnrollment(CohortlyError):
    status_code = status.HTTP_409_CONFLICT
    kind = "duplicate_enrollment"
    default_message = "Already enrolled in this program"


class CapacityExceeded(CohortlyError):
    status_code = status.HTTP_409_CONFLICT
    kind = "capacity_exceeded"
    default_message = "Program has reached maximum capacity"


class AlreadySubmitted(CohortlyError):
    status_code = status.HTTP_409_CONFLICT
    kind = "already_submitted"
    default_message = (
        "You have already submitted this assessment. Resubmission is not allowed."
    )
