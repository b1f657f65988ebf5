"""
Profile API Endpoints

First sign-in registration. These routes need a valid bearer credential but
not an existing (or approved) profile.
"""
# ruff: noqa: B008 - FastAPI Depends in function defaults is standard pattern

from typing import Any

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cohortly.auth import get_token_claims
from cohortly.auth.dependencies import subject_id
from cohortly.core.database import get_db
from cohortly.core.errors import NotFound
from cohortly.core.models import Profile
from cohortly.core.schemas import ProfileRegister, ProfileSchema
from cohortly.workflow import users

router = APIRouter()


@router.post("", response_model=ProfileSchema, status_code=status.HTTP_201_CREATED)
async def register_profile(
    data: ProfileRegister,
    response: Response,
    claims: dict[str, Any] = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Create the caller's profile. Returns 200 with the existing one if already registered."""
    profile, created = await users.register_profile(db, subject_id(claims), data)
    if not created:
        response.status_code = status.HTTP_200_OK
    return profile


@router.get("/me", response_model=ProfileSchema)
async def get_my_profile(
    claims: dict[str, Any] = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """The caller's profile, whether or not it has been approved yet."""
    profile = await db.get(Profile, subject_id(claims))
    if profile is None:
        raise NotFound("User profile not found")
    return profile
