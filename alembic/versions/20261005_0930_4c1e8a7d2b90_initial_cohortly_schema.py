"""Initial cohortly schema

Revision ID: 4c1e8a7d2b90
Revises:
Create Date: 2026-10-05 09:30:12.418233+00:00

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4c1e8a7d2b90"  # pragma: allowlist secret
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Creation timestamp (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Last update timestamp (UTC)",
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, comment="student, mentor, admin"),
        sa.Column(
            "is_approved",
            sa.Boolean(),
            nullable=True,
            comment="NULL = never reviewed, False = awaiting approval, True = approved",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "programs",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("max_students", sa.Integer(), nullable=True, comment="NULL or 0 = unlimited"),
        sa.Column(
            "status",
            sa.String(length=20),
            nullable=True,
            comment="draft, open, closed, completed (NULL read as draft)",
        ),
        sa.Column("created_by", sa.UUID(), nullable=True),
        sa.Column("mentor_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["mentor_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "program_mentors",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("program_id", sa.UUID(), nullable=False),
        sa.Column("mentor_id", sa.UUID(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["mentor_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("program_id", "mentor_id", name="uq_program_mentor"),
    )
    op.create_index("ix_program_mentors_program_id", "program_mentors", ["program_id"])
    op.create_index("ix_program_mentors_mentor_id", "program_mentors", ["mentor_id"])

    op.create_table(
        "applications",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("program_id", sa.UUID(), nullable=False),
        sa.Column("student_id", sa.UUID(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column(
            "application_data", sa.JSON(), nullable=False, comment="Free-form applicant answers"
        ),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reviewed_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("program_id", "student_id", name="uq_application_program_student"),
    )
    op.create_index("ix_applications_program_id", "applications", ["program_id"])
    op.create_index("ix_applications_student_id", "applications", ["student_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("program_id", sa.UUID(), nullable=False),
        sa.Column("student_id", sa.UUID(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("program_id", "student_id", name="uq_enrollment_program_student"),
    )
    op.create_index("ix_enrollments_program_id", "enrollments", ["program_id"])
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])

    op.create_table(
        "assessments",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("program_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column(
            "description",
            sa.Text(),
            nullable=True,
            comment="Plain text, or JSON {questions, totalQuestions}",
        ),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_score", sa.Float(), nullable=False),
        sa.Column("created_by", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_assessments_program_id", "assessments", ["program_id"])

    op.create_table(
        "assessment_submissions",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("assessment_id", sa.UUID(), nullable=False),
        sa.Column("student_id", sa.UUID(), nullable=False),
        sa.Column("submission_data", sa.JSON(), nullable=False),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("graded_by", sa.UUID(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["graded_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "assessment_id", "student_id", name="uq_submission_assessment_student"
        ),
    )
    op.create_index(
        "ix_assessment_submissions_assessment_id", "assessment_submissions", ["assessment_id"]
    )
    op.create_index(
        "ix_assessment_submissions_student_id", "assessment_submissions", ["student_id"]
    )

    op.create_table(
        "assessment_answers",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("assessment_id", sa.UUID(), nullable=False),
        sa.Column(
            "correct_answer",
            sa.Text(),
            nullable=False,
            comment="JSON object: question index -> answer",
        ),
        sa.Column("grading_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("assessment_id"),
    )


def downgrade() -> None:
    op.drop_table("assessment_answers")
    op.drop_index("ix_assessment_submissions_student_id", table_name="assessment_submissions")
    op.drop_index("ix_assessment_submissions_assessment_id", table_name="assessment_submissions")
    op.drop_table("assessment_submissions")
    op.drop_index("ix_assessments_program_id", table_name="assessments")
    op.drop_table("assessments")
    op.drop_index("ix_enrollments_student_id", table_name="enrollments")
    op.drop_index("ix_enrollments_program_id", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_applications_student_id", table_name="applications")
    op.drop_index("ix_applications_program_id", table_name="applications")
    op.drop_table("applications")
    op.drop_index("ix_program_mentors_mentor_id", table_name="program_mentors")
    op.drop_index("ix_program_mentors_program_id", table_name="program_mentors")
    op.drop_table("program_mentors")
    op.drop_table("programs")
    op.drop_table("profiles")
