"""
Program Schemas

Pydantic models for program registry requests and responses.
"""

from datetime import date, datetime
from uuid import UUID

from pydantic import Field, model_validator

from cohortly.core.models import ProgramStatus

from .base import ActionParams, ORMSchema
from .users import MentorSummary


class ProgramSchema(ORMSchema):
    """Program as stored, without computed fields."""

    id: UUID
    title: str
    description: str | None
    start_date: date | None
    end_date: date | None
    max_students: int | None
    status: str | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime


class ProgramView(ProgramSchema):
    """Program with enrollment count, fullness and the resolved mentor list.

    `status` and `max_students` are normalised: NULL reads as draft / 0.
    """

    status: ProgramStatus
    max_students: int
    enrollments_count: int
    is_full: bool
    mentor: list[MentorSummary] = Field(default_factory=list)


class GetProgramsParams(ActionParams):
    status: ProgramStatus | None = None


class ProgramIdParams(ActionParams):
    program_id: UUID


class OptionalProgramIdParams(ActionParams):
    program_id: UUID | None = None


class ProgramWrite(ActionParams):
    """Fields accepted by create_program and update_program."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    max_students: int | None = Field(None, ge=0, description="0 or absent = unlimited")
    status: ProgramStatus = ProgramStatus.DRAFT
    mentor_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self) -> "ProgramWrite":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class CreateProgramParams(ProgramWrite):
    pass


class UpdateProgramParams(ProgramWrite):
    program_id: UUID
