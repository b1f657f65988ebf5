"""
Assessment Models

Assessments belong to a program. Quiz-like assessments embed their question
list as JSON text in `description`; the correct answers live in a separate
one-to-one AssessmentAnswer row that students never read.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class AssessmentType(StrEnum):
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    PROJECT = "project"
    EXAM = "exam"


class SubmissionStatus(StrEnum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    GRADED = "graded"
    RETURNED = "returned"


class Assessment(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A gradable unit of work belonging to a program."""

    __tablename__ = "assessments"

    program_id: Mapped[UUID] = mapped_column(
        ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Plain text, or JSON {questions, totalQuestions}"
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=AssessmentType.QUIZ)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    max_score: Mapped[float] = mapped_column(Float, nullable=False, default=100)
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )


class AssessmentSubmission(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A student's attempt at an assessment (one row per student)."""

    __tablename__ = "assessment_submissions"
    __table_args__ = (
        UniqueConstraint("assessment_id", "student_id", name="uq_submission_assessment_student"),
    )

    assessment_id: Mapped[UUID] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    submission_data: Mapped[dict[str, Any]] = mapped_column(
        type_=JSON, nullable=False, default=dict
    )
    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    graded_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    graded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubmissionStatus.SUBMITTED
    )


class AssessmentAnswer(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Answer key for an assessment, keyed by question index."""

    __tablename__ = "assessment_answers"

    assessment_id: Mapped[UUID] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    correct_answer: Mapped[str] = mapped_column(
        Text, nullable=False, default="{}", comment="JSON object: question index -> answer"
    )
    grading_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
