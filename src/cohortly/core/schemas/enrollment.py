"""
Application and Enrollment Schemas
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel

from cohortly.core.models import ApplicationStatus, EnrollmentStatus

from .base import ActionParams, ORMSchema


class ApplicationSchema(ORMSchema):
    id: UUID
    program_id: UUID
    student_id: UUID
    status: ApplicationStatus
    application_data: dict[str, Any]
    submitted_at: datetime
    reviewed_at: datetime | None
    reviewed_by: UUID | None
    created_at: datetime
    updated_at: datetime


class EnrollmentSchema(ORMSchema):
    id: UUID
    program_id: UUID
    student_id: UUID
    status: EnrollmentStatus
    enrolled_at: datetime
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class CapacitySchema(BaseModel):
    """Result of a capacity check; max 0 means unlimited."""

    available: bool
    current: int
    max: int


class CreateApplicationParams(ActionParams):
    program_id: UUID
    application_data: dict[str, Any]


class CreateEnrollmentParams(ActionParams):
    program_id: UUID
    student_id: UUID | None = None


class ReviewApplicationParams(ActionParams):
    application_id: UUID
    review_action: Literal["approve", "reject"]


class GetEnrollmentParams(ActionParams):
    program_id: UUID
    student_id: UUID | None = None


class UpdateEnrollmentParams(ActionParams):
    enrollment_id: UUID
    status: EnrollmentStatus | None = None
