"""
Program Registry

Program CRUD, mentor assignment and role-aware listing.

Who mentors a program is the union of the many-to-many `program_mentors`
table and the legacy `programs.mentor_id` column. Every permission check and
listing goes through `mentored_program_ids` / `is_program_mentor` so the two
sources never disagree. `backfill_legacy_mentors` copies the legacy column
into the assignment table.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cohortly.auth.dependencies import Caller
from cohortly.core.errors import Forbidden, NotFound, ValidationError
from cohortly.core.models import (
    Enrollment,
    Profile,
    Program,
    ProgramMentor,
    ProgramStatus,
    UserRole,
)
from cohortly.core.schemas import (
    CreateProgramParams,
    MentorSummary,
    ProgramSchema,
    ProgramView,
    UpdateProgramParams,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Mentor resolution
# ============================================================================


async def mentored_program_ids(db: AsyncSession, mentor_id: UUID) -> set[UUID]:
    """Ids of every program `mentor_id` mentors, from either source."""
    via_table = await db.execute(
        select(ProgramMentor.program_id).where(ProgramMentor.mentor_id == mentor_id)
    )
    via_legacy = await db.execute(select(Program.id).where(Program.mentor_id == mentor_id))
    return set(via_table.scalars().all()) | set(via_legacy.scalars().all())


async def is_program_mentor(db: AsyncSession, program_id: UUID, mentor_id: UUID) -> bool:
    """True if `mentor_id` is assigned to the program through either source."""
    legacy = await db.execute(
        select(Program.id).where(Program.id == program_id, Program.mentor_id == mentor_id)
    )
    if legacy.scalar_one_or_none() is not None:
        return True

    assigned = await db.execute(
        select(ProgramMentor.id).where(
            ProgramMentor.program_id == program_id, ProgramMentor.mentor_id == mentor_id
        )
    )
    return assigned.first() is not None


async def require_staff_access(
    db: AsyncSession, caller: Caller, program_id: UUID, message: str
) -> None:
    """Allow admins, and mentors of the program; reject everyone else.

    Raises:
        Forbidden: Caller is a student, or a mentor not assigned to the program
    """
    if caller.is_admin:
        return
    if caller.is_mentor and await is_program_mentor(db, program_id, caller.id):
        return
    raise Forbidden(message)


async def backfill_legacy_mentors(db: AsyncSession) -> int:
    """Copy legacy `programs.mentor_id` values into `program_mentors`.

    Returns:
        Number of assignment rows inserted
    """
    result = await db.execute(
        select(Program.id, Program.mentor_id)
        .outerjoin(
            ProgramMentor,
            (ProgramMentor.program_id == Program.id)
            & (ProgramMentor.mentor_id == Program.mentor_id),
        )
        .where(Program.mentor_id.is_not(None), ProgramMentor.id.is_(None))
    )
    rows = result.all()
    db.add_all(ProgramMentor(program_id=pid, mentor_id=mid) for pid, mid in rows)
    await db.commit()

    logger.info(f"Backfilled {len(rows)} legacy mentor assignments")
    return len(rows)


# ============================================================================
# Loading and views
# ============================================================================


def _with_mentors():  # type: ignore[no-untyped-def]
    return selectinload(Program.mentor_assignments).selectinload(ProgramMentor.mentor)


async def get_program_or_404(db: AsyncSession, program_id: UUID) -> Program:
    result = await db.execute(select(Program).where(Program.id == program_id))
    program = result.scalar_one_or_none()
    if program is None:
        raise NotFound("Program not found")
    return program


async def enrollment_counts(db: AsyncSession, program_ids: Iterable[UUID]) -> dict[UUID, int]:
    """Number of enrollments per program id."""
    ids = list(program_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Enrollment.program_id, func.count(Enrollment.id))
        .where(Enrollment.program_id.in_(ids))
        .group_by(Enrollment.program_id)
    )
    return {program_id: count for program_id, count in result.all()}


async def build_views(db: AsyncSession, programs: Sequence[Program]) -> list[ProgramView]:
    """Attach enrollment counts, fullness and the merged mentor list.

    `programs` must have been loaded with their mentor assignments.
    """
    counts = await enrollment_counts(db, (p.id for p in programs))

    legacy_ids = {p.mentor_id for p in programs if p.mentor_id is not None}
    legacy: dict[UUID, Profile] = {}
    if legacy_ids:
        result = await db.execute(select(Profile).where(Profile.id.in_(legacy_ids)))
        legacy = {profile.id: profile for profile in result.scalars().all()}

    views = []
    for program in programs:
        mentors = [
            MentorSummary.model_validate(assignment.mentor)
            for assignment in program.mentor_assignments
            if assignment.mentor is not None
        ]
        legacy_mentor = legacy.get(program.mentor_id) if program.mentor_id else None
        if legacy_mentor is not None and all(m.id != legacy_mentor.id for m in mentors):
            mentors.append(MentorSummary.model_validate(legacy_mentor))

        count = counts.get(program.id, 0)
        capacity = program.capacity
        base = ProgramSchema.model_validate(program).model_dump(exclude={"status", "max_students"})
        views.append(
            ProgramView(
                **base,
                status=ProgramStatus(program.effective_status),
                max_students=capacity,
                enrollments_count=count,
                is_full=capacity > 0 and count >= capacity,
                mentor=mentors,
            )
        )
    return views


async def _load_programs(db: AsyncSession, *criteria) -> list[Program]:  # type: ignore[no-untyped-def]
    result = await db.execute(
        select(Program)
        .where(*criteria)
        .options(_with_mentors())
        .order_by(Program.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _view_one(db: AsyncSession, program_id: UUID) -> ProgramView:
    programs = await _load_programs(db, Program.id == program_id)
    if not programs:
        raise NotFound("Program not found")
    return (await build_views(db, programs))[0]


# ============================================================================
# Queries
# ============================================================================


async def list_programs(
    db: AsyncSession, caller: Caller, status: ProgramStatus | None = None
) -> list[ProgramView]:
    """Programs visible to the caller, newest first.

    Students only see open programs that still have room. Mentors only see
    programs they mentor. Admins see everything.
    """
    criteria = []
    if caller.is_student:
        criteria.append(Program.status == ProgramStatus.OPEN)
    if status is not None:
        if status == ProgramStatus.DRAFT:
            criteria.append((Program.status == status) | Program.status.is_(None))
        else:
            criteria.append(Program.status == status)
    if caller.is_mentor:
        ids = await mentored_program_ids(db, caller.id)
        if not ids:
            return []
        criteria.append(Program.id.in_(ids))

    views = await build_views(db, await _load_programs(db, *criteria))

    if caller.is_student:
        return [view for view in views if not view.is_full]
    return views


async def list_my_programs(db: AsyncSession, caller: Caller) -> list[ProgramView]:
    """Programs the caller belongs to: enrolled (students) or mentoring (mentors)."""
    if caller.is_student:
        enrolled = select(Enrollment.program_id).where(Enrollment.student_id == caller.id)
        return await build_views(db, await _load_programs(db, Program.id.in_(enrolled)))
    return await list_programs(db, caller)


async def get_program(db: AsyncSession, caller: Caller, program_id: UUID) -> ProgramView:
    """Single program view.

    Raises:
        NotFound: Missing, or not open and the caller is a student
        Forbidden: Caller is a mentor not assigned to the program
    """
    view = await _view_one(db, program_id)

    if caller.is_student and view.status != ProgramStatus.OPEN:
        raise NotFound("Program not found")
    if caller.is_mentor and not await is_program_mentor(db, program_id, caller.id):
        raise Forbidden("You do not have permission to access this program")

    return view


# ============================================================================
# Mutations
# ============================================================================


def _unique(ids: Iterable[UUID]) -> list[UUID]:
    return list(dict.fromkeys(ids))


async def _validate_mentors(db: AsyncSession, mentor_ids: list[UUID]) -> None:
    if not mentor_ids:
        return
    result = await db.execute(
        select(Profile.id).where(Profile.id.in_(mentor_ids), Profile.role == UserRole.MENTOR)
    )
    found = set(result.scalars().all())
    missing = [str(mid) for mid in mentor_ids if mid not in found]
    if missing:
        raise ValidationError(f"Not a mentor: {', '.join(missing)}")


async def create_program(
    db: AsyncSession, caller: Caller, params: CreateProgramParams
) -> ProgramView:
    """Create a program and its mentor assignments in one transaction.

    Raises:
        Forbidden: Caller is not an admin
        ValidationError: A mentor id does not reference a mentor
    """
    if not caller.is_admin:
        raise Forbidden("Only admins can create programs")

    mentor_ids = _unique(params.mentor_ids)
    await _validate_mentors(db, mentor_ids)

    program = Program(
        title=params.title,
        description=params.description,
        start_date=params.start_date,
        end_date=params.end_date,
        max_students=params.max_students or None,
        status=params.status,
        created_by=caller.id,
        mentor_id=None,
    )
    db.add(program)
    await db.flush()

    db.add_all(ProgramMentor(program_id=program.id, mentor_id=mid) for mid in mentor_ids)
    await db.commit()

    logger.info(f"Program {program.id} created by {caller.id} with {len(mentor_ids)} mentors")
    return await _view_one(db, program.id)


async def update_program(
    db: AsyncSession, caller: Caller, params: UpdateProgramParams
) -> ProgramView:
    """Overwrite program fields and replace its mentor assignments.

    The legacy `mentor_id` column is cleared; `mentorIds` becomes the complete
    assignment list.

    Raises:
        Forbidden: Caller is not an admin
        NotFound: Program does not exist
        ValidationError: A mentor id does not reference a mentor
    """
    if not caller.is_admin:
        raise Forbidden("Only admins can update programs")

    program = await get_program_or_404(db, params.program_id)
    mentor_ids = _unique(params.mentor_ids)
    await _validate_mentors(db, mentor_ids)

    program.title = params.title
    program.description = params.description
    program.start_date = params.start_date
    program.end_date = params.end_date
    program.max_students = params.max_students or None
    program.status = params.status
    program.mentor_id = None

    await db.execute(delete(ProgramMentor).where(ProgramMentor.program_id == program.id))
    db.add_all(ProgramMentor(program_id=program.id, mentor_id=mid) for mid in mentor_ids)
    await db.commit()

    logger.info(f"Program {program.id} updated by {caller.id}")
    return await _view_one(db, program.id)
