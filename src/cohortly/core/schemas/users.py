"""
User Schemas

Pydantic models for profile requests and responses.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field

from cohortly.core.models import UserRole

from .base import ActionParams, ORMSchema


class ProfileSchema(ORMSchema):
    """Full profile schema for responses."""

    id: UUID
    email: str
    full_name: str | None
    role: UserRole
    is_approved: bool | None
    created_at: datetime
    updated_at: datetime


class MentorSummary(ORMSchema):
    """Compact mentor listing embedded in program views."""

    id: UUID
    email: str
    full_name: str | None


class ProfileRegister(ActionParams):
    """First sign-in registration. Admins are never self-registered."""

    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    full_name: str | None = Field(None, max_length=200)
    role: Literal["student", "mentor"] = "student"


class GetProfileParams(ActionParams):
    user_id: UUID | None = None


class UserIdParams(ActionParams):
    user_id: UUID


class UpdateUserRoleParams(ActionParams):
    user_id: UUID
    role: UserRole
