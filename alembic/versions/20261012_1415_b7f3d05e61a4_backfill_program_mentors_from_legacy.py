"""Backfill program_mentors from legacy programs.mentor_id

Revision ID: b7f3d05e61a4
Revises: 4c1e8a7d2b90
Create Date: 2026-10-12 14:15:47.902116+00:00

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b7f3d05e61a4"  # pragma: allowlist secret
down_revision: str | None = "4c1e8a7d2b90"  # pragma: allowlist secret
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Every legacy mentor gets an assignment row; existing pairs are left alone
    op.execute(
        sa.text(
            """
            INSERT INTO program_mentors (id, program_id, mentor_id, assigned_at)
            SELECT gen_random_uuid(), p.id, p.mentor_id, now()
            FROM programs p
            WHERE p.mentor_id IS NOT NULL
              AND NOT EXISTS (
                  SELECT 1 FROM program_mentors pm
                  WHERE pm.program_id = p.id AND pm.mentor_id = p.mentor_id
              )
            """
        )
    )


def downgrade() -> None:
    # Backfilled rows are indistinguishable from assignments made later
    pass
