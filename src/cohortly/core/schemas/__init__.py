"""Pydantic schemas for API validation."""

from .assessments import (
    AssessmentAnswerSchema,
    AssessmentIdParams,
    AssessmentSchema,
    CreateAssessmentParams,
    GradeSubmissionParams,
    SubmissionSchema,
    SubmitAssessmentParams,
    UpdateAssessmentParams,
    UpsertAnswerParams,
)
from .base import ActionParams, ORMSchema
from .enrollment import (
    ApplicationSchema,
    CapacitySchema,
    CreateApplicationParams,
    CreateEnrollmentParams,
    EnrollmentSchema,
    GetEnrollmentParams,
    ReviewApplicationParams,
    UpdateEnrollmentParams,
)
from .programs import (
    CreateProgramParams,
    GetProgramsParams,
    OptionalProgramIdParams,
    ProgramIdParams,
    ProgramSchema,
    ProgramView,
    UpdateProgramParams,
)
from .users import (
    GetProfileParams,
    MentorSummary,
    ProfileRegister,
    ProfileSchema,
    UpdateUserRoleParams,
    UserIdParams,
)

__all__ = [
    # Base
    "ActionParams",
    "ORMSchema",
    # Users
    "ProfileSchema",
    "ProfileRegister",
    "MentorSummary",
    "GetProfileParams",
    "UserIdParams",
    "UpdateUserRoleParams",
    # Programs
    "ProgramSchema",
    "ProgramView",
    "GetProgramsParams",
    "ProgramIdParams",
    "OptionalProgramIdParams",
    "CreateProgramParams",
    "UpdateProgramParams",
    # Enrollment
    "ApplicationSchema",
    "EnrollmentSchema",
    "CapacitySchema",
    "CreateApplicationParams",
    "CreateEnrollmentParams",
    "ReviewApplicationParams",
    "GetEnrollmentParams",
    "UpdateEnrollmentParams",
    # Assessments
    "AssessmentSchema",
    "AssessmentAnswerSchema",
    "SubmissionSchema",
    "CreateAssessmentParams",
    "UpdateAssessmentParams",
    "AssessmentIdParams",
    "UpsertAnswerParams",
    "SubmitAssessmentParams",
    "GradeSubmissionParams",
]
