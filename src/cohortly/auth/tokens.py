"""
Bearer credential issue and verification.

Credentials are short-lived HS256 JWTs carrying the subject id, the role the
client believes it has, and the shared audience.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from cohortly.config import settings
from cohortly.core.errors import Forbidden, Unauthenticated
from cohortly.core.models import UserRole

logger = logging.getLogger(__name__)

VALID_ROLES = {role.value for role in UserRole}


class TokenManager:
    """Creates and verifies bearer tokens."""

    def __init__(
        self,
        secret: str | None = None,
        audience: str | None = None,
        algorithm: str | None = None,
        expires_minutes: int | None = None,
    ) -> None:
        self.secret = secret or settings.JWT_SECRET
        self.audience = audience or settings.JWT_AUDIENCE
        self.algorithm = algorithm or settings.JWT_ALGORITHM
        self.expires_minutes = expires_minutes or settings.JWT_EXPIRATION_MINUTES

    def issue(self, subject_id: str, role: str | None = None) -> str:
        """Create a signed token for `subject_id`.

        Args:
            subject_id: Identity provider subject (profile id)
            role: Role claim to embed (optional)

        Returns:
            Encoded JWT
        """
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(subject_id),
            "aud": self.audience,
            "iat": now,
            "exp": now + timedelta(minutes=self.expires_minutes),
        }
        if role is not None:
            payload["role"] = role
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        """Verify a token and return its claims.

        Raises:
            Unauthenticated: Bad signature, expired, wrong audience or no subject
            Forbidden: Role claim present but not a known role
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.warning("Rejected expired bearer token")
            raise Unauthenticated("Invalid or expired token") from e
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected bearer token: {e}")
            raise Unauthenticated("Invalid or expired token") from e

        if not payload.get("sub"):
            raise Unauthenticated("JWT missing sub claim")

        role = payload.get("role")
        if role is not None and role not in VALID_ROLES:
            raise Forbidden("Forbidden: Invalid role in JWT")

        return payload


def get_token_manager() -> TokenManager:
    """Token manager bound to current settings."""
    return TokenManager()
