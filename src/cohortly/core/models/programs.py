"""
Program Models

Programs are time-bounded cohorts with an optional capacity. Mentors are
assigned through ProgramMentor; the legacy single `mentor_id` column is still
honoured when resolving who mentors a program.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from .users import Profile


class ProgramStatus(StrEnum):
    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    COMPLETED = "completed"


class Program(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A cohort students apply to and enroll in."""

    __tablename__ = "programs"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    max_students: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="NULL or 0 = unlimited"
    )
    status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        default=ProgramStatus.DRAFT,
        comment="draft, open, closed, completed (NULL read as draft)",
    )
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    # Legacy single-mentor assignment, superseded by program_mentors
    mentor_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    mentor_assignments: Mapped[list[ProgramMentor]] = relationship(
        back_populates="program", cascade="all, delete-orphan"
    )

    @property
    def effective_status(self) -> str:
        return self.status or ProgramStatus.DRAFT

    @property
    def capacity(self) -> int:
        """Configured maximum, 0 meaning unlimited."""
        return self.max_students or 0


class ProgramMentor(Base, UUIDPrimaryKeyMixin):
    """Many-to-many assignment of mentors to programs."""

    __tablename__ = "program_mentors"
    __table_args__ = (UniqueConstraint("program_id", "mentor_id", name="uq_program_mentor"),)

    program_id: Mapped[UUID] = mapped_column(
        ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    mentor_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Relationships
    program: Mapped[Program] = relationship(back_populates="mentor_assignments")
    mentor: Mapped[Profile] = relationship()
