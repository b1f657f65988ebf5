"""
Assessment Schemas
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from cohortly.core.models import AssessmentType, SubmissionStatus
from cohortly.core.questions import Question

from .base import ActionParams, ORMSchema


class AssessmentSchema(ORMSchema):
    id: UUID
    program_id: UUID
    title: str
    description: str | None
    type: AssessmentType
    due_date: datetime | None
    max_score: float
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime
    questions: list[Question] = Field(default_factory=list)


class AssessmentAnswerSchema(ORMSchema):
    assessment_id: UUID
    correct_answers: dict[int, str]
    grading_notes: str | None
    created_at: datetime


class SubmissionSchema(ORMSchema):
    id: UUID
    assessment_id: UUID
    student_id: UUID
    submission_data: dict[str, Any]
    score: float | None
    feedback: str | None
    graded_by: UUID | None
    submitted_at: datetime | None
    graded_at: datetime | None
    status: SubmissionStatus
    created_at: datetime
    updated_at: datetime


class AssessmentWrite(ActionParams):
    """Fields accepted by create_assessment and update_assessment.

    When `questions` is given the description is generated from them and any
    free text in `description` is ignored.
    """

    title: str = Field(..., min_length=1, max_length=200)
    type: AssessmentType = AssessmentType.QUIZ
    max_score: float = Field(..., gt=0)
    description: str | None = None
    due_date: datetime | None = None
    questions: list[Question] | None = None
    correct_answers: dict[int, str] | None = None
    grading_notes: str | None = None


class CreateAssessmentParams(AssessmentWrite):
    program_id: UUID


class UpdateAssessmentParams(AssessmentWrite):
    assessment_id: UUID


class AssessmentIdParams(ActionParams):
    assessment_id: UUID


class UpsertAnswerParams(ActionParams):
    assessment_id: UUID
    correct_answers: dict[int, str]
    grading_notes: str | None = None


class SubmitAssessmentParams(ActionParams):
    assessment_id: UUID
    submission_data: dict[str, Any] = Field(default_factory=dict)
    status: Literal["draft", "submitted"] = "submitted"


class GradeSubmissionParams(ActionParams):
    submission_id: UUID
    score: float = Field(..., ge=0)
    feedback: str | None = None
