"""
Cohortly SQLAlchemy Models
"""

from .assessments import (
    Assessment,
    AssessmentAnswer,
    AssessmentSubmission,
    AssessmentType,
    SubmissionStatus,
)
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow
from .enrollment import Application, ApplicationStatus, Enrollment, EnrollmentStatus
from .programs import Program, ProgramMentor, ProgramStatus
from .users import Profile, UserRole

__all__ = [
    # Base
    "Base",
    "UUIDPrimaryKeyMixin",
    "TimestampMixin",
    "utcnow",
    # Users
    "Profile",
    "UserRole",
    # Programs
    "Program",
    "ProgramMentor",
    "ProgramStatus",
    # Enrollment
    "Application",
    "ApplicationStatus",
    "Enrollment",
    "EnrollmentStatus",
    # Assessments
    "Assessment",
    "AssessmentAnswer",
    "AssessmentSubmission",
    "AssessmentType",
    "SubmissionStatus",
]
