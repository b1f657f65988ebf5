"""
User Administration

Profile self-registration on first sign-in and admin-only account management.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cohortly.auth.dependencies import Caller
from cohortly.core.errors import Forbidden, NotFound, ValidationError
from cohortly.core.models import Profile, UserRole
from cohortly.core.schemas import ProfileRegister

logger = logging.getLogger(__name__)


async def register_profile(
    db: AsyncSession, subject_id: UUID, params: ProfileRegister
) -> tuple[Profile, bool]:
    """Create the profile for a newly signed-in identity.

    New profiles await admin approval. Registering again returns the existing
    profile unchanged.

    Returns:
        (profile, created)

    Raises:
        ValidationError: Email already belongs to another profile
    """
    existing = await db.get(Profile, subject_id)
    if existing is not None:
        return existing, False

    profile = Profile(
        id=subject_id,
        email=params.email.lower(),
        full_name=params.full_name,
        role=UserRole(params.role),
        is_approved=False,
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ValidationError("Email is already registered") from e
    await db.refresh(profile)

    logger.info(f"Registered {profile.role} profile {profile.id}")
    return profile, True


def _require_admin(caller: Caller) -> None:
    if not caller.is_admin:
        raise Forbidden("Only admins can manage users")


async def _get_profile_or_404(db: AsyncSession, user_id: UUID) -> Profile:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise NotFound("User not found")
    return profile


async def get_profile(db: AsyncSession, caller: Caller, user_id: UUID | None = None) -> Profile:
    """The caller's own profile, or (admins only) anyone's."""
    if user_id is None or user_id == caller.id:
        return caller.profile
    _require_admin(caller)
    return await _get_profile_or_404(db, user_id)


async def list_users(db: AsyncSession, caller: Caller) -> list[Profile]:
    _require_admin(caller)
    result = await db.execute(select(Profile).order_by(Profile.created_at.desc()))
    return list(result.scalars().all())


async def approve_user(db: AsyncSession, caller: Caller, user_id: UUID) -> Profile:
    _require_admin(caller)
    profile = await _get_profile_or_404(db, user_id)

    profile.is_approved = True
    await db.commit()
    await db.refresh(profile)

    logger.info(f"User {user_id} approved by {caller.id}")
    return profile


async def update_user_role(
    db: AsyncSession, caller: Caller, user_id: UUID, role: UserRole
) -> Profile:
    _require_admin(caller)
    profile = await _get_profile_or_404(db, user_id)

    previous = profile.role
    profile.role = role
    await db.commit()
    await db.refresh(profile)

    logger.info(f"User {user_id} role {previous} -> {role} by {caller.id}")
    return profile


async def delete_user(db: AsyncSession, caller: Caller, user_id: UUID) -> None:
    """Hard-delete a profile. Admins cannot delete themselves.

    Applications, enrollments and submissions cascade with the profile.
    """
    _require_admin(caller)
    if user_id == caller.id:
        raise Forbidden("You cannot delete your own account")

    profile = await _get_profile_or_404(db, user_id)
    await db.delete(profile)
    await db.commit()

    logger.info(f"User {user_id} deleted by {caller.id}")
