"""
Action Dispatch Endpoint

A single endpoint routes named actions to workflow handlers. Read-only actions
are served over GET with their parameters in the query string (JSON-encoded
where not scalar); every action may be sent over POST as `{action, ...params}`.

Every successful response is `{"success": true, ...payload}`. Failures are
CohortlyError subclasses rendered by the app-level exception handler.
"""
# ruff: noqa: B008 - FastAPI Depends in function defaults is standard pattern

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cohortly.auth import Caller, get_caller
from cohortly.core.database import get_db
from cohortly.core.errors import ValidationError
from cohortly.core.schemas import (
    ApplicationSchema,
    AssessmentIdParams,
    CreateApplicationParams,
    CreateAssessmentParams,
    CreateEnrollmentParams,
    CreateProgramParams,
    EnrollmentSchema,
    GetEnrollmentParams,
    GetProfileParams,
    GetProgramsParams,
    GradeSubmissionParams,
    OptionalProgramIdParams,
    ProfileSchema,
    ProgramIdParams,
    ReviewApplicationParams,
    SubmissionSchema,
    SubmitAssessmentParams,
    UpdateAssessmentParams,
    UpdateEnrollmentParams,
    UpdateProgramParams,
    UpdateUserRoleParams,
    UpsertAnswerParams,
    UserIdParams,
)
from cohortly.core.validation import parse_params
from cohortly.workflow import assessments, enrollment, programs, users

logger = logging.getLogger(__name__)

router = APIRouter()

Payload = dict[str, Any]
Handler = Callable[[AsyncSession, Caller, Payload], Awaitable[Payload]]


@dataclass(frozen=True)
class Action:
    name: str
    handler: Handler
    read_only: bool


ACTIONS: dict[str, Action] = {}


def action(name: str, *, read_only: bool = False) -> Callable[[Handler], Handler]:
    """Register a handler under an action name."""

    def register(handler: Handler) -> Handler:
        ACTIONS[name] = Action(name=name, handler=handler, read_only=read_only)
        return handler

    return register


def _dump(schema: type[BaseModel], obj: Any) -> Payload | None:
    if obj is None:
        return None
    return schema.model_validate(obj).model_dump(mode="json")


def _dump_all(schema: type[BaseModel], objs: Iterable[Any]) -> list[Payload]:
    return [schema.model_validate(obj).model_dump(mode="json") for obj in objs]


# ============================================================================
# Applications & enrollments
# ============================================================================


@action("create_application")
async def _create_application(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(CreateApplicationParams, raw)
    application = await enrollment.create_application(
        db, caller, params.program_id, params.application_data
    )
    return {
        "application": _dump(ApplicationSchema, application),
        "message": "Application submitted successfully",
    }


@action("create_enrollment")
async def _create_enrollment(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(CreateEnrollmentParams, raw)
    outcome = await enrollment.submit_request(db, caller, params.program_id, params.student_id)
    if outcome.application is not None:
        return {
            "application": _dump(ApplicationSchema, outcome.application),
            "message": "Application submitted successfully. Waiting for approval.",
        }
    return {
        "enrollment": _dump(EnrollmentSchema, outcome.enrollment),
        "message": "Enrollment created successfully",
    }


@action("review_application")
async def _review_application(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(ReviewApplicationParams, raw)
    outcome = await enrollment.review_application(
        db, caller, params.application_id, params.review_action
    )
    return {
        "application": _dump(ApplicationSchema, outcome.application),
        "enrollment": _dump(EnrollmentSchema, outcome.enrollment),
        "message": f"Application {outcome.application.status} successfully",
    }


@action("check_capacity", read_only=True)
async def _check_capacity(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(ProgramIdParams, raw)
    capacity = await enrollment.check_capacity(db, params.program_id)
    return capacity.model_dump()


@action("get_applications", read_only=True)
async def _get_applications(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(OptionalProgramIdParams, raw)
    found = await enrollment.list_applications(db, caller, params.program_id)
    return {"applications": _dump_all(ApplicationSchema, found)}


@action("get_my_applications", read_only=True)
async def _get_my_applications(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    found = await enrollment.list_my_applications(db, caller)
    return {"applications": _dump_all(ApplicationSchema, found)}


@action("get_enrollments", read_only=True)
async def _get_enrollments(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(OptionalProgramIdParams, raw)
    found = await enrollment.list_enrollments(db, caller, params.program_id)
    return {"enrollments": _dump_all(EnrollmentSchema, found)}


@action("get_my_enrollments", read_only=True)
async def _get_my_enrollments(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    found = await enrollment.list_my_enrollments(db, caller)
    return {"enrollments": _dump_all(EnrollmentSchema, found)}


@action("get_enrollment", read_only=True)
async def _get_enrollment(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(GetEnrollmentParams, raw)
    found = await enrollment.get_enrollment(db, caller, params.program_id, params.student_id)
    return {"enrollment": _dump(EnrollmentSchema, found)}


@action("update_enrollment")
async def _update_enrollment(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(UpdateEnrollmentParams, raw)
    updated = await enrollment.update_enrollment(db, caller, params.enrollment_id, params.status)
    message = (
        "Enrollment updated successfully"
        if params.status is not None
        else "Enrollment retrieved successfully (no fields to update)"
    )
    return {"enrollment": _dump(EnrollmentSchema, updated), "message": message}


# ============================================================================
# Programs
# ============================================================================


@action("get_programs", read_only=True)
async def _get_programs(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(GetProgramsParams, raw)
    views = await programs.list_programs(db, caller, params.status)
    return {"programs": [view.model_dump(mode="json") for view in views]}


@action("get_my_programs", read_only=True)
async def _get_my_programs(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    views = await programs.list_my_programs(db, caller)
    return {"programs": [view.model_dump(mode="json") for view in views]}


@action("get_program", read_only=True)
async def _get_program(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(ProgramIdParams, raw)
    view = await programs.get_program(db, caller, params.program_id)
    return {"program": view.model_dump(mode="json")}


@action("create_program")
async def _create_program(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(CreateProgramParams, raw)
    view = await programs.create_program(db, caller, params)
    return {"program": view.model_dump(mode="json"), "message": "Program created successfully"}


@action("update_program")
async def _update_program(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(UpdateProgramParams, raw)
    view = await programs.update_program(db, caller, params)
    return {"program": view.model_dump(mode="json"), "message": "Program updated successfully"}


# ============================================================================
# Users
# ============================================================================


@action("get_profile", read_only=True)
async def _get_profile(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(GetProfileParams, raw)
    profile = await users.get_profile(db, caller, params.user_id)
    return {"profile": _dump(ProfileSchema, profile)}


@action("get_users", read_only=True)
async def _get_users(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    return {"users": _dump_all(ProfileSchema, await users.list_users(db, caller))}


@action("approve_user")
async def _approve_user(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(UserIdParams, raw)
    profile = await users.approve_user(db, caller, params.user_id)
    return {"profile": _dump(ProfileSchema, profile), "message": "User approved successfully"}


@action("update_user_role")
async def _update_user_role(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(UpdateUserRoleParams, raw)
    profile = await users.update_user_role(db, caller, params.user_id, params.role)
    return {"profile": _dump(ProfileSchema, profile), "message": "User role updated successfully"}


@action("delete_user")
async def _delete_user(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(UserIdParams, raw)
    await users.delete_user(db, caller, params.user_id)
    return {"message": "User deleted successfully"}


# ============================================================================
# Assessments
# ============================================================================


@action("get_assessments", read_only=True)
async def _get_assessments(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(ProgramIdParams, raw)
    found = await assessments.list_assessments(db, caller, params.program_id)
    return {"assessments": [a.model_dump(mode="json") for a in found]}


@action("get_assessment", read_only=True)
async def _get_assessment(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(AssessmentIdParams, raw)
    found = await assessments.get_assessment(db, caller, params.assessment_id)
    return {"assessment": found.model_dump(mode="json")}


@action("create_assessment")
async def _create_assessment(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(CreateAssessmentParams, raw)
    created = await assessments.create_assessment(db, caller, params)
    return {
        "assessment": created.model_dump(mode="json"),
        "message": "Assessment created successfully",
    }


@action("update_assessment")
async def _update_assessment(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(UpdateAssessmentParams, raw)
    updated = await assessments.update_assessment(db, caller, params)
    return {
        "assessment": updated.model_dump(mode="json"),
        "message": "Assessment updated successfully",
    }


@action("get_assessment_answer", read_only=True)
async def _get_assessment_answer(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(AssessmentIdParams, raw)
    answer = await assessments.get_assessment_answer(db, caller, params.assessment_id)
    return {"answer": answer.model_dump(mode="json") if answer is not None else None}


@action("upsert_assessment_answer")
async def _upsert_assessment_answer(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(UpsertAnswerParams, raw)
    answer = await assessments.upsert_assessment_answer(
        db, caller, params.assessment_id, params.correct_answers, params.grading_notes
    )
    return {"answer": answer.model_dump(mode="json"), "message": "Answer key saved successfully"}


@action("submit_assessment")
async def _submit_assessment(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(SubmitAssessmentParams, raw)
    submission = await assessments.submit_assessment(db, caller, params)
    message = (
        "Draft saved successfully"
        if params.status == "draft"
        else "Assessment submitted successfully"
    )
    return {"submission": _dump(SubmissionSchema, submission), "message": message}


@action("grade_assessment")
async def _grade_assessment(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(GradeSubmissionParams, raw)
    submission = await assessments.grade_assessment(
        db, caller, params.submission_id, params.score, params.feedback
    )
    return {
        "submission": _dump(SubmissionSchema, submission),
        "message": "Assessment graded successfully",
    }


@action("get_submissions", read_only=True)
async def _get_submissions(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(AssessmentIdParams, raw)
    found = await assessments.list_submissions(db, caller, params.assessment_id)
    return {"submissions": _dump_all(SubmissionSchema, found)}


@action("get_my_submission", read_only=True)
async def _get_my_submission(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(AssessmentIdParams, raw)
    found = await assessments.get_my_submission(db, caller, params.assessment_id)
    return {"submission": _dump(SubmissionSchema, found)}


@action("get_program_submissions", read_only=True)
async def _get_program_submissions(db: AsyncSession, caller: Caller, raw: Payload) -> Payload:
    params = parse_params(ProgramIdParams, raw)
    found = await assessments.list_program_submissions(db, caller, params.program_id)
    return {"submissions": _dump_all(SubmissionSchema, found)}


# ============================================================================
# Endpoints
# ============================================================================


def decode_query_value(value: str) -> Any:
    """JSON-decode a query parameter, keeping it as a string when it is not JSON."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


async def run_action(
    db: AsyncSession, caller: Caller, name: Any, params: Payload, *, read_only: bool
) -> JSONResponse:
    """Look up and run an action.

    Raises:
        ValidationError: Missing or unknown action, or a mutation sent over GET
    """
    if not name:
        raise ValidationError("Missing action parameter")

    entry = ACTIONS.get(str(name))
    if entry is None:
        raise ValidationError(f"Unknown action: {name}")
    if read_only and not entry.read_only:
        raise ValidationError(f"Action {entry.name} must be sent with POST")

    logger.debug(f"Action {entry.name} by {caller.role} {caller.id}")
    payload = await entry.handler(db, caller, params)
    return JSONResponse(content={"success": True, **payload})


@router.get("", response_model=None)
async def dispatch_query(
    request: Request,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Run a read-only action named by the `action` query parameter."""
    query = dict(request.query_params)
    name = query.pop("action", None)
    params = {key: decode_query_value(value) for key, value in query.items()}
    return await run_action(db, caller, name, params, read_only=True)


@router.post("", response_model=None)
async def dispatch_body(
    request: Request,
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Run the action named in a JSON body `{action, ...params}`."""
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError("Invalid request body format") from e
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body format")

    name = body.pop("action", None)
    return await run_action(db, caller, name, body, read_only=False)
