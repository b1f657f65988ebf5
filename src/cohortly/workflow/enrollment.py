"""
Application / Enrollment Workflow

Mediates a student's request to join a program. Students apply and wait for
review; admins enroll students directly. Two invariants hold throughout:

- at most one Application and one Enrollment per (program, student)
- enrollments per program never exceed `max_students` when it is non-zero

Submission is capacity-blind; approval is capacity-aware. Approval runs in a
single transaction: the program row is locked, capacity is checked, and only
then are the application status change and the enrollment insert written and
committed together. A full program therefore leaves the application pending
with nothing to undo.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cohortly.auth.dependencies import Caller
from cohortly.core.errors import (
    CapacityExceeded,
    DuplicateApplication,
    DuplicateEnrollment,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)
from cohortly.core.models import (
    Application,
    ApplicationStatus,
    Enrollment,
    EnrollmentStatus,
    Profile,
    Program,
    UserRole,
    utcnow,
)
from cohortly.core.schemas import CapacitySchema
from cohortly.workflow.programs import (
    get_program_or_404,
    mentored_program_ids,
    require_staff_access,
)

logger = logging.getLogger(__name__)

ReviewAction = Literal["approve", "reject"]


@dataclass
class RequestOutcome:
    """Result of a join request: a pending application or a direct enrollment."""

    application: Application | None = None
    enrollment: Enrollment | None = None


@dataclass
class ReviewOutcome:
    """Reviewed application, plus the enrollment an approval created (if any)."""

    application: Application
    enrollment: Enrollment | None = None


# ============================================================================
# Capacity
# ============================================================================


async def check_capacity(
    db: AsyncSession, program_id: UUID, *, lock: bool = False
) -> CapacitySchema:
    """Compare current enrollments against the program's maximum.

    Args:
        program_id: Program to check
        lock: Take a row lock on the program for the rest of the transaction,
            serializing concurrent enrollment into the same program

    Raises:
        NotFound: Program does not exist
    """
    stmt = select(Program).where(Program.id == program_id)
    if lock:
        stmt = stmt.with_for_update()
    program = (await db.execute(stmt)).scalar_one_or_none()
    if program is None:
        raise NotFound("Program not found")

    current = await db.scalar(
        select(func.count(Enrollment.id)).where(Enrollment.program_id == program_id)
    )
    maximum = program.capacity
    current = current or 0
    return CapacitySchema(available=maximum == 0 or current < maximum, current=current, max=maximum)


# ============================================================================
# Lookups
# ============================================================================


async def find_application(
    db: AsyncSession, program_id: UUID, student_id: UUID
) -> Application | None:
    result = await db.execute(
        select(Application).where(
            Application.program_id == program_id, Application.student_id == student_id
        )
    )
    return result.scalar_one_or_none()


async def find_enrollment(
    db: AsyncSession, program_id: UUID, student_id: UUID
) -> Enrollment | None:
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.program_id == program_id, Enrollment.student_id == student_id
        )
    )
    return result.scalar_one_or_none()


async def _ensure_not_joined(db: AsyncSession, program_id: UUID, student_id: UUID) -> None:
    if await find_application(db, program_id, student_id) is not None:
        raise DuplicateApplication()
    if await find_enrollment(db, program_id, student_id) is not None:
        raise DuplicateEnrollment()


# ============================================================================
# Submission
# ============================================================================


async def _insert_application(
    db: AsyncSession, program_id: UUID, student_id: UUID, data: dict[str, Any]
) -> Application:
    application = Application(
        program_id=program_id,
        student_id=student_id,
        status=ApplicationStatus.PENDING,
        application_data=data,
        submitted_at=utcnow(),
    )
    db.add(application)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateApplication() from e

    logger.info(f"Application {application.id}: student {student_id} -> program {program_id}")
    return application


async def _enroll(db: AsyncSession, program_id: UUID, student_id: UUID) -> Enrollment:
    """Capacity-checked enrollment insert; commits the current transaction."""
    capacity = await check_capacity(db, program_id, lock=True)
    if not capacity.available:
        logger.info(
            f"Enrollment refused, program {program_id} full ({capacity.current}/{capacity.max})"
        )
        raise CapacityExceeded()

    enrollment = Enrollment(
        program_id=program_id,
        student_id=student_id,
        status=EnrollmentStatus.ACTIVE,
        enrolled_at=utcnow(),
    )
    db.add(enrollment)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateEnrollment() from e

    logger.info(f"Enrollment {enrollment.id}: student {student_id} -> program {program_id}")
    return enrollment


async def submit_request(
    db: AsyncSession, caller: Caller, program_id: UUID, student_id: UUID | None = None
) -> RequestOutcome:
    """Ask to join a program.

    Students get a pending application (no capacity check). Admins skip the
    application stage and enroll the student directly, capacity permitting.

    Raises:
        Forbidden: Student acting for someone else, or a mentor
        NotFound: Program (or, for admins, the student) does not exist
        ValidationError: Admin target is not a student profile
        DuplicateApplication / DuplicateEnrollment: Pair already joined
        CapacityExceeded: Admin enrollment into a full program
    """
    target = student_id or caller.id

    if caller.is_student and target != caller.id:
        raise Forbidden("Students can only enroll themselves")
    if not (caller.is_admin or caller.is_student):
        raise Forbidden("Insufficient permissions")

    await get_program_or_404(db, program_id)

    if caller.is_student:
        await _ensure_not_joined(db, program_id, caller.id)
        application = await _insert_application(db, program_id, caller.id, {})
        return RequestOutcome(application=application)

    student = await db.get(Profile, target)
    if student is None:
        raise NotFound("Student not found")
    if student.role != UserRole.STUDENT:
        raise ValidationError("Target user is not a student")
    if await find_enrollment(db, program_id, target) is not None:
        raise DuplicateEnrollment()

    return RequestOutcome(enrollment=await _enroll(db, program_id, target))


async def create_application(
    db: AsyncSession, caller: Caller, program_id: UUID, application_data: dict[str, Any]
) -> Application:
    """Student applies to a program with free-form application answers.

    Raises:
        Forbidden: Caller is not a student
        NotFound: Program does not exist
        DuplicateApplication / DuplicateEnrollment: Pair already joined
    """
    if not caller.is_student:
        raise Forbidden("Only students can create applications")

    await get_program_or_404(db, program_id)
    await _ensure_not_joined(db, program_id, caller.id)
    return await _insert_application(db, program_id, caller.id, application_data)


# ============================================================================
# Review
# ============================================================================


async def review_application(
    db: AsyncSession, caller: Caller, application_id: UUID, action: ReviewAction
) -> ReviewOutcome:
    """Approve or reject a pending application.

    Approval enrolls the student unless an enrollment already exists. If the
    program is full nothing is written and the application stays pending.

    Raises:
        Forbidden: Caller is a student, or a mentor not assigned to the program
        NotFound: Application does not exist
        InvalidState: Application was already decided
        CapacityExceeded: Approval into a full program
    """
    if not (caller.is_admin or caller.is_mentor):
        raise Forbidden("Insufficient permissions")

    result = await db.execute(
        select(Application).where(Application.id == application_id).with_for_update()
    )
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFound("Application not found")

    await require_staff_access(
        db, caller, application.program_id, "You do not have permission to review this application"
    )

    if application.status != ApplicationStatus.PENDING:
        raise InvalidState(f"Application is already {application.status}")

    enrollment: Enrollment | None = None
    if action == "approve":
        existing = await find_enrollment(db, application.program_id, application.student_id)
        if existing is None:
            capacity = await check_capacity(db, application.program_id, lock=True)
            if not capacity.available:
                logger.info(
                    f"Approval of {application_id} refused, program full "
                    f"({capacity.current}/{capacity.max})"
                )
                raise CapacityExceeded()
            enrollment = Enrollment(
                program_id=application.program_id,
                student_id=application.student_id,
                status=EnrollmentStatus.ACTIVE,
                enrolled_at=utcnow(),
            )
            db.add(enrollment)

    application.status = (
        ApplicationStatus.APPROVED if action == "approve" else ApplicationStatus.REJECTED
    )
    application.reviewed_at = utcnow()
    application.reviewed_by = caller.id

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateEnrollment() from e

    await db.refresh(application)
    logger.info(f"Application {application_id} {application.status} by {caller.id}")
    return ReviewOutcome(application=application, enrollment=enrollment)


# ============================================================================
# Listing
# ============================================================================


async def _staff_program_filter(db: AsyncSession, caller: Caller) -> set[UUID] | None:
    """Program ids a mentor may see; None means unrestricted (admin)."""
    if caller.is_admin:
        return None
    if caller.is_mentor:
        return await mentored_program_ids(db, caller.id)
    raise Forbidden("Insufficient permissions")


async def list_applications(
    db: AsyncSession, caller: Caller, program_id: UUID | None = None
) -> list[Application]:
    """Applications for review, newest first; mentors see only their programs."""
    allowed = await _staff_program_filter(db, caller)
    if allowed is not None and not allowed:
        return []

    stmt = select(Application).order_by(Application.created_at.desc())
    if program_id is not None:
        stmt = stmt.where(Application.program_id == program_id)
    if allowed is not None:
        stmt = stmt.where(Application.program_id.in_(allowed))
    return list((await db.execute(stmt)).scalars().all())


async def list_my_applications(db: AsyncSession, caller: Caller) -> list[Application]:
    if not caller.is_student:
        raise Forbidden("Only students can view their own applications")
    result = await db.execute(
        select(Application)
        .where(Application.student_id == caller.id)
        .order_by(Application.created_at.desc())
    )
    return list(result.scalars().all())


async def list_enrollments(
    db: AsyncSession, caller: Caller, program_id: UUID | None = None
) -> list[Enrollment]:
    """Enrollments, most recent first; mentors see only their programs."""
    allowed = await _staff_program_filter(db, caller)
    if allowed is not None and not allowed:
        return []

    stmt = select(Enrollment).order_by(Enrollment.enrolled_at.desc())
    if program_id is not None:
        stmt = stmt.where(Enrollment.program_id == program_id)
    if allowed is not None:
        stmt = stmt.where(Enrollment.program_id.in_(allowed))
    return list((await db.execute(stmt)).scalars().all())


async def list_my_enrollments(db: AsyncSession, caller: Caller) -> list[Enrollment]:
    if not caller.is_student:
        raise Forbidden("Only students can view their own enrollments")
    result = await db.execute(
        select(Enrollment)
        .where(Enrollment.student_id == caller.id)
        .order_by(Enrollment.enrolled_at.desc())
    )
    return list(result.scalars().all())


async def get_enrollment(
    db: AsyncSession, caller: Caller, program_id: UUID, student_id: UUID | None = None
) -> Enrollment | None:
    """A student's enrollment in a program, or None.

    Defaults to the caller. Students may only look up themselves; mentors only
    within programs they mentor.
    """
    target = student_id or caller.id
    if target != caller.id:
        if caller.is_student:
            raise Forbidden("Insufficient permissions")
        await require_staff_access(db, caller, program_id, "Insufficient permissions")
    return await find_enrollment(db, program_id, target)


async def update_enrollment(
    db: AsyncSession,
    caller: Caller,
    enrollment_id: UUID,
    status: EnrollmentStatus | None = None,
) -> Enrollment:
    """Change an enrollment's status (active, completed, dropped).

    Completing stamps `completed_at`; any other status clears it. With no
    status the enrollment is returned unchanged.

    Raises:
        Forbidden: Caller is a student, or a mentor not assigned to the program
        NotFound: Enrollment does not exist
    """
    if not (caller.is_admin or caller.is_mentor):
        raise Forbidden("Insufficient permissions")

    enrollment = await db.get(Enrollment, enrollment_id)
    if enrollment is None:
        raise NotFound("Enrollment not found")

    await require_staff_access(
        db, caller, enrollment.program_id, "You do not have permission to update this enrollment"
    )

    if status is None or status == enrollment.status:
        return enrollment

    enrollment.status = status
    enrollment.completed_at = utcnow() if status == EnrollmentStatus.COMPLETED else None
    await db.commit()
    await db.refresh(enrollment)

    logger.info(f"Enrollment {enrollment_id} -> {status} by {caller.id}")
    return enrollment
