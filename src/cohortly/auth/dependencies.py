"""
FastAPI authentication dependencies.

The role claim in a bearer token is only a hint: the caller's role and
approval are always re-resolved from the profiles table.
"""
# ruff: noqa: B008 - FastAPI Depends in function defaults is standard pattern

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from cohortly.auth.tokens import TokenManager, get_token_manager
from cohortly.core.database import get_db
from cohortly.core.errors import Forbidden, NotFound, Unauthenticated
from cohortly.core.models import Profile, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    """Authenticated, approved user making the current request."""

    id: UUID
    role: UserRole
    profile: Profile

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_mentor(self) -> bool:
        return self.role == UserRole.MENTOR

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an `Authorization: Bearer <token>` header."""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated("Missing Authorization header")
    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        raise Unauthenticated("Missing Authorization header")
    return token


async def get_token_claims(
    authorization: str | None = Header(default=None),
    tokens: TokenManager = Depends(get_token_manager),
) -> dict[str, Any]:
    """Verified token claims, without requiring an existing profile."""
    return tokens.decode(extract_bearer_token(authorization))


def subject_id(claims: dict[str, Any]) -> UUID:
    """Subject claim as a UUID."""
    try:
        return UUID(str(claims["sub"]))
    except (KeyError, ValueError) as e:
        raise Unauthenticated("JWT sub claim is not a valid user id") from e


async def get_caller(
    claims: dict[str, Any] = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> Caller:
    """Resolve the approved caller behind a bearer token.

    Raises:
        Unauthenticated: Missing or invalid token
        NotFound: Token subject has no profile
        Forbidden: Profile exists but is not approved (admins are exempt)
    """
    user_id = subject_id(claims)
    profile = await db.get(Profile, user_id)

    if profile is None:
        logger.warning(f"Token subject {user_id} has no profile")
        raise NotFound("User profile not found")

    role = UserRole(profile.role)
    if role != UserRole.ADMIN and profile.is_approved is not True:
        raise Forbidden("Account not approved")

    claimed = claims.get("role")
    if claimed is not None and claimed != role:
        logger.info(f"Token role claim {claimed!r} differs from stored role {role!r} for {user_id}")

    return Caller(id=profile.id, role=role, profile=profile)
