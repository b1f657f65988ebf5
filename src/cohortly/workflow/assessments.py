"""
Assessment & Submission Workflow

Assessment CRUD with embedded question lists, the answer-key record, the
single-submission gate and grading.

Submission gate:
- one submission row per (assessment, student)
- a draft may be saved any number of times and is overwritten in place
- once submitted (or graded) further submits fail with AlreadySubmitted
- `submitted_at` is stamped only by a final submit
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cohortly.auth.dependencies import Caller
from cohortly.core.errors import (
    AlreadySubmitted,
    Forbidden,
    NotFound,
    ValidationError,
)
from cohortly.core.models import (
    Assessment,
    AssessmentAnswer,
    AssessmentSubmission,
    SubmissionStatus,
    utcnow,
)
from cohortly.core.questions import AnswerKey, Question, decode_questions, encode_questions
from cohortly.core.schemas import (
    AssessmentAnswerSchema,
    AssessmentSchema,
    CreateAssessmentParams,
    SubmitAssessmentParams,
    UpdateAssessmentParams,
)
from cohortly.workflow.enrollment import find_enrollment
from cohortly.workflow.programs import get_program_or_404, require_staff_access

logger = logging.getLogger(__name__)

VISIBLE_SUBMISSION_STATUSES = (SubmissionStatus.SUBMITTED, SubmissionStatus.GRADED)


# ============================================================================
# Views
# ============================================================================


def assessment_view(assessment: Assessment) -> AssessmentSchema:
    """Assessment response with its questions decoded from the description."""
    view = AssessmentSchema.model_validate(assessment)
    return view.model_copy(update={"questions": decode_questions(assessment.description)})


def answer_view(answer: AssessmentAnswer) -> AssessmentAnswerSchema:
    return AssessmentAnswerSchema(
        assessment_id=answer.assessment_id,
        correct_answers=AnswerKey.from_json(answer.correct_answer).answers,
        grading_notes=answer.grading_notes,
        created_at=answer.created_at,
    )


# ============================================================================
# Access
# ============================================================================


async def get_assessment_or_404(db: AsyncSession, assessment_id: UUID) -> Assessment:
    assessment = await db.get(Assessment, assessment_id)
    if assessment is None:
        raise NotFound("Assessment not found")
    return assessment


async def _require_program_access(db: AsyncSession, caller: Caller, program_id: UUID) -> None:
    """Staff of the program, or a student enrolled in it."""
    if caller.is_student:
        if await find_enrollment(db, program_id, caller.id) is None:
            raise Forbidden("You are not enrolled in this program")
        return
    await require_staff_access(
        db, caller, program_id, "You do not have permission to access this program"
    )


# ============================================================================
# Answer key
# ============================================================================


def _build_answer_key(
    answers: dict[int, str], questions: list[Question]
) -> AnswerKey:
    key = AnswerKey(answers=answers)
    if questions:
        try:
            key.validate_against(questions)
        except ValueError as e:
            raise ValidationError(str(e)) from e
    return key


async def _stage_answer_key(
    db: AsyncSession, assessment_id: UUID, key: AnswerKey, grading_notes: str | None
) -> AssessmentAnswer:
    """Insert or update the answer-key row without committing."""
    result = await db.execute(
        select(AssessmentAnswer).where(AssessmentAnswer.assessment_id == assessment_id)
    )
    answer = result.scalar_one_or_none()
    if answer is None:
        answer = AssessmentAnswer(assessment_id=assessment_id)
        db.add(answer)
    answer.correct_answer = key.to_json()
    answer.grading_notes = grading_notes
    return answer


async def get_assessment_answer(
    db: AsyncSession, caller: Caller, assessment_id: UUID
) -> AssessmentAnswerSchema | None:
    """Answer key for an assessment; never visible to students."""
    if caller.is_student:
        raise Forbidden("Students cannot view answer keys")

    assessment = await get_assessment_or_404(db, assessment_id)
    await require_staff_access(
        db, caller, assessment.program_id, "You do not have permission to access this program"
    )

    result = await db.execute(
        select(AssessmentAnswer).where(AssessmentAnswer.assessment_id == assessment_id)
    )
    answer = result.scalar_one_or_none()
    return answer_view(answer) if answer is not None else None


async def upsert_assessment_answer(
    db: AsyncSession,
    caller: Caller,
    assessment_id: UUID,
    correct_answers: dict[int, str],
    grading_notes: str | None = None,
) -> AssessmentAnswerSchema:
    assessment = await get_assessment_or_404(db, assessment_id)
    await require_staff_access(
        db, caller, assessment.program_id, "You do not have permission to manage this assessment"
    )

    key = _build_answer_key(correct_answers, decode_questions(assessment.description))
    answer = await _stage_answer_key(db, assessment_id, key, grading_notes)
    await db.commit()
    await db.refresh(answer)

    logger.info(f"Answer key for assessment {assessment_id} saved by {caller.id}")
    return answer_view(answer)


# ============================================================================
# Assessments
# ============================================================================


def _description_for(questions: list[Question] | None, description: str | None) -> str | None:
    if questions is not None:
        return encode_questions(questions)
    return description


async def create_assessment(
    db: AsyncSession, caller: Caller, params: CreateAssessmentParams
) -> AssessmentSchema:
    """Create an assessment, plus its answer key when answers are given.

    Raises:
        NotFound: Program does not exist
        Forbidden: Caller is neither an admin nor a mentor of the program
        ValidationError: Answer key refers to a question that does not exist
    """
    await get_program_or_404(db, params.program_id)
    await require_staff_access(
        db, caller, params.program_id, "Only admins and program mentors can create assessments"
    )

    questions = params.questions or []
    key = None
    if params.correct_answers is not None:
        key = _build_answer_key(params.correct_answers, questions)

    assessment = Assessment(
        program_id=params.program_id,
        title=params.title,
        description=_description_for(params.questions, params.description),
        type=params.type,
        due_date=params.due_date,
        max_score=params.max_score,
        created_by=caller.id,
    )
    db.add(assessment)
    await db.flush()

    if key is not None:
        await _stage_answer_key(db, assessment.id, key, params.grading_notes)
    await db.commit()
    await db.refresh(assessment)

    logger.info(
        f"Assessment {assessment.id} ({len(questions)} questions) created in "
        f"program {params.program_id} by {caller.id}"
    )
    return assessment_view(assessment)


async def update_assessment(
    db: AsyncSession, caller: Caller, params: UpdateAssessmentParams
) -> AssessmentSchema:
    """Replace an assessment's fields; the answer key is upserted when given."""
    assessment = await get_assessment_or_404(db, params.assessment_id)
    await require_staff_access(
        db, caller, assessment.program_id, "You do not have permission to manage this assessment"
    )

    description = _description_for(params.questions, params.description)
    key = None
    if params.correct_answers is not None:
        key = _build_answer_key(params.correct_answers, decode_questions(description))

    assessment.title = params.title
    assessment.description = description
    assessment.type = params.type
    assessment.due_date = params.due_date
    assessment.max_score = params.max_score

    if key is not None:
        await _stage_answer_key(db, assessment.id, key, params.grading_notes)
    await db.commit()
    await db.refresh(assessment)

    logger.info(f"Assessment {assessment.id} updated by {caller.id}")
    return assessment_view(assessment)


async def list_assessments(
    db: AsyncSession, caller: Caller, program_id: UUID
) -> list[AssessmentSchema]:
    """Assessments of a program by due date; undated ones last."""
    await get_program_or_404(db, program_id)
    await _require_program_access(db, caller, program_id)

    result = await db.execute(
        select(Assessment)
        .where(Assessment.program_id == program_id)
        .order_by(
            Assessment.due_date.is_(None),
            Assessment.due_date.asc(),
            Assessment.created_at.asc(),
        )
    )
    return [assessment_view(a) for a in result.scalars().all()]


async def get_assessment(
    db: AsyncSession, caller: Caller, assessment_id: UUID
) -> AssessmentSchema:
    assessment = await get_assessment_or_404(db, assessment_id)
    await _require_program_access(db, caller, assessment.program_id)
    return assessment_view(assessment)


# ============================================================================
# Submissions
# ============================================================================


async def _find_submission(
    db: AsyncSession, assessment_id: UUID, student_id: UUID
) -> AssessmentSubmission | None:
    result = await db.execute(
        select(AssessmentSubmission)
        .where(
            AssessmentSubmission.assessment_id == assessment_id,
            AssessmentSubmission.student_id == student_id,
        )
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def submit_assessment(
    db: AsyncSession, caller: Caller, params: SubmitAssessmentParams
) -> AssessmentSubmission:
    """Save a draft or make the final submission.

    Raises:
        Forbidden: Caller is not a student enrolled in the program
        NotFound: Assessment does not exist
        AlreadySubmitted: A non-draft submission already exists
    """
    if not caller.is_student:
        raise Forbidden("Only students can submit assessments")

    assessment = await get_assessment_or_404(db, params.assessment_id)
    if await find_enrollment(db, assessment.program_id, caller.id) is None:
        raise Forbidden("You are not enrolled in this program")

    submission = await _find_submission(db, params.assessment_id, caller.id)
    if submission is not None and submission.status != SubmissionStatus.DRAFT:
        raise AlreadySubmitted()

    final = params.status == SubmissionStatus.SUBMITTED
    if submission is None:
        submission = AssessmentSubmission(
            assessment_id=params.assessment_id, student_id=caller.id
        )
        db.add(submission)

    submission.submission_data = params.submission_data
    submission.status = SubmissionStatus(params.status)
    submission.submitted_at = utcnow() if final else None

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise AlreadySubmitted() from e
    await db.refresh(submission)

    logger.info(
        f"Submission {submission.id} for assessment {params.assessment_id} "
        f"saved as {submission.status} by {caller.id}"
    )
    return submission


async def grade_assessment(
    db: AsyncSession,
    caller: Caller,
    submission_id: UUID,
    score: float,
    feedback: str | None = None,
) -> AssessmentSubmission:
    """Grade a submission in any state. Re-grading overwrites the previous grade.

    Raises:
        NotFound: Submission does not exist
        Forbidden: Caller is neither an admin nor a mentor of the program
        ValidationError: Score outside 0..max_score
    """
    submission = await db.get(AssessmentSubmission, submission_id)
    if submission is None:
        raise NotFound("Submission not found")

    assessment = await get_assessment_or_404(db, submission.assessment_id)
    await require_staff_access(
        db, caller, assessment.program_id, "You do not have permission to grade this submission"
    )

    if score < 0 or score > assessment.max_score:
        raise ValidationError(f"Score must be between 0 and {assessment.max_score:g}")

    submission.score = score
    submission.feedback = feedback
    submission.graded_by = caller.id
    submission.graded_at = utcnow()
    submission.status = SubmissionStatus.GRADED
    await db.commit()
    await db.refresh(submission)

    logger.info(f"Submission {submission_id} graded {score:g} by {caller.id}")
    return submission


async def list_submissions(
    db: AsyncSession, caller: Caller, assessment_id: UUID
) -> list[AssessmentSubmission]:
    """Non-draft submissions for an assessment, latest first."""
    assessment = await get_assessment_or_404(db, assessment_id)
    await require_staff_access(
        db, caller, assessment.program_id, "You do not have permission to view these submissions"
    )

    result = await db.execute(
        select(AssessmentSubmission)
        .where(
            AssessmentSubmission.assessment_id == assessment_id,
            AssessmentSubmission.status.in_(VISIBLE_SUBMISSION_STATUSES),
        )
        .order_by(AssessmentSubmission.submitted_at.desc())
    )
    return list(result.scalars().all())


async def get_my_submission(
    db: AsyncSession, caller: Caller, assessment_id: UUID
) -> AssessmentSubmission | None:
    if not caller.is_student:
        raise Forbidden("Only students have submissions")
    await get_assessment_or_404(db, assessment_id)

    result = await db.execute(
        select(AssessmentSubmission).where(
            AssessmentSubmission.assessment_id == assessment_id,
            AssessmentSubmission.student_id == caller.id,
        )
    )
    return result.scalar_one_or_none()


async def list_program_submissions(
    db: AsyncSession, caller: Caller, program_id: UUID
) -> list[AssessmentSubmission]:
    """Submitted and graded submissions across a program, latest first."""
    await get_program_or_404(db, program_id)
    await require_staff_access(
        db, caller, program_id, "You do not have permission to view these submissions"
    )

    result = await db.execute(
        select(AssessmentSubmission)
        .join(Assessment, Assessment.id == AssessmentSubmission.assessment_id)
        .where(
            Assessment.program_id == program_id,
            AssessmentSubmission.status.in_(VISIBLE_SUBMISSION_STATUSES),
        )
        .order_by(AssessmentSubmission.submitted_at.desc())
    )
    return list(result.scalars().all())
