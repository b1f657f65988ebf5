"""
User Models

Profiles mirror identities issued by the external identity provider and
carry the role and approval flag the API authorizes against.
"""

from __future__ import annotations

from enum import StrEnum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class UserRole(StrEnum):
    STUDENT = "student"
    MENTOR = "mentor"
    ADMIN = "admin"


class Profile(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A student, mentor or admin.

    The primary key is the subject id issued by the identity provider.
    """

    __tablename__ = "profiles"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.STUDENT, comment="student, mentor, admin"
    )
    is_approved: Mapped[bool | None] = mapped_column(
        nullable=True,
        default=None,
        comment="NULL = never reviewed, False = awaiting approval, True = approved",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
