"""
Tests for the Application / Enrollment Workflow

Submission, review, capacity enforcement and duplicate prevention, exercised
through the action endpoint.
"""

from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cohortly.core.models import (
    Application,
    ApplicationStatus,
    Enrollment,
    EnrollmentStatus,
    ProgramMentor,
    UserRole,
)

ACTIONS_URL = "/api/v1/actions"


async def _enrollment_count(db: AsyncSession, program_id) -> int:
    return await db.scalar(
        select(func.count(Enrollment.id)).where(Enrollment.program_id == program_id)
    )


@pytest.fixture
def post(client: AsyncClient, auth_headers):
    """POST an action as a given profile."""

    async def send(profile, action: str, **params):
        return await client.post(
            ACTIONS_URL, json={"action": action, **params}, headers=auth_headers(profile)
        )

    return send


@pytest.fixture
def get(client: AsyncClient, auth_headers):
    """GET a read-only action as a given profile."""

    async def send(profile, action: str, **params):
        query = {"action": action, **{key: str(value) for key, value in params.items()}}
        return await client.get(ACTIONS_URL, params=query, headers=auth_headers(profile))

    return send


async def _apply(post, student, program) -> dict:
    response = await post(student, "create_enrollment", programId=str(program.id))
    assert response.status_code == 200, response.text
    return response.json()["application"]


class TestSubmitRequest:
    """Test create_enrollment (submit application/enrollment request)."""

    async def test_student_gets_pending_application(self, post, student, program, db_session) -> None:
        response = await post(student, "create_enrollment", programId=str(program.id))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Application submitted successfully. Waiting for approval."
        assert data["application"]["status"] == "pending"
        assert data["application"]["student_id"] == str(student.id)
        assert data["application"]["submitted_at"] is not None
        assert await _enrollment_count(db_session, program.id) == 0

    async def test_application_is_capacity_blind(
        self, post, student, make_program, other_student, admin
    ) -> None:
        """Students may apply to a full program; capacity is checked at approval."""
        full = await make_program(title="Tiny", max_students=1)
        await post(admin, "create_enrollment", programId=str(full.id), studentId=str(other_student.id))

        response = await post(student, "create_enrollment", programId=str(full.id))

        assert response.status_code == 200
        assert response.json()["application"]["status"] == "pending"

    async def test_duplicate_application(self, post, student, program) -> None:
        await _apply(post, student, program)

        response = await post(student, "create_enrollment", programId=str(program.id))

        assert response.status_code == 409
        assert response.json() == {
            "error": "You have already applied to this program",
            "kind": "duplicate_application",
        }

    async def test_duplicate_enrollment(self, post, admin, student, program) -> None:
        await post(admin, "create_enrollment", programId=str(program.id), studentId=str(student.id))

        response = await post(student, "create_enrollment", programId=str(program.id))

        assert response.status_code == 409
        assert response.json()["kind"] == "duplicate_enrollment"

    async def test_student_cannot_enroll_others(self, post, student, other_student, program) -> None:
        response = await post(
            student, "create_enrollment", programId=str(program.id), studentId=str(other_student.id)
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Students can only enroll themselves"

    async def test_mentor_cannot_submit(self, post, mentor, student, program) -> None:
        response = await post(
            mentor, "create_enrollment", programId=str(program.id), studentId=str(student.id)
        )

        assert response.status_code == 403

    async def test_program_must_exist(self, post, student) -> None:
        response = await post(
            student, "create_enrollment", programId="00000000-0000-0000-0000-000000000000"
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Program not found"

    async def test_admin_enrolls_directly(self, post, admin, student, program, db_session) -> None:
        response = await post(
            admin, "create_enrollment", programId=str(program.id), studentId=str(student.id)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Enrollment created successfully"
        assert data["enrollment"]["status"] == "active"
        assert data["enrollment"]["student_id"] == str(student.id)
        assert "application" not in data

        applications = await db_session.scalar(select(func.count(Application.id)))
        assert applications == 0

    async def test_admin_enrollment_capacity_checked(
        self, post, admin, student, other_student, make_program
    ) -> None:
        program = await make_program(title="One seat", max_students=1)
        await post(admin, "create_enrollment", programId=str(program.id), studentId=str(student.id))

        response = await post(
            admin, "create_enrollment", programId=str(program.id), studentId=str(other_student.id)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Program has reached maximum capacity"

    @pytest.mark.parametrize("target", ["mentor", "admin"])
    async def test_admin_can_only_enroll_students(
        self, post, admin, mentor, program, db_session, target
    ) -> None:
        profile = {"mentor": mentor, "admin": admin}[target]

        response = await post(
            admin, "create_enrollment", programId=str(program.id), studentId=str(profile.id)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Target user is not a student"
        assert await _enrollment_count(db_session, program.id) == 0

    async def test_explicit_application_with_data(self, post, student, program) -> None:
        response = await post(
            student,
            "create_application",
            programId=str(program.id),
            applicationData={"motivation": "Career change", "experience": "2 years"},
        )

        assert response.status_code == 200
        application = response.json()["application"]
        assert application["application_data"] == {
            "motivation": "Career change",
            "experience": "2 years",
        }

    async def test_explicit_application_requires_data(self, post, student, program) -> None:
        response = await post(student, "create_application", programId=str(program.id))

        assert response.status_code == 400
        assert response.json()["error"] == "Missing applicationData"

    async def test_only_students_create_applications(self, post, admin, program) -> None:
        response = await post(
            admin, "create_application", programId=str(program.id), applicationData={}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Only students can create applications"


class TestReviewApplication:
    """Test review_application transitions."""

    async def test_approve_creates_enrollment(self, post, admin, student, program, db_session) -> None:
        application = await _apply(post, student, program)

        response = await post(
            admin, "review_application", applicationId=application["id"], reviewAction="approve"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Application approved successfully"
        assert data["application"]["status"] == "approved"
        assert data["application"]["reviewed_by"] == str(admin.id)
        assert data["application"]["reviewed_at"] is not None
        assert data["enrollment"]["status"] == "active"
        assert await _enrollment_count(db_session, program.id) == 1

    async def test_reject_never_enrolls(self, post, admin, student, program, db_session) -> None:
        application = await _apply(post, student, program)

        response = await post(
            admin, "review_application", applicationId=application["id"], reviewAction="reject"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["application"]["status"] == "rejected"
        assert data["enrollment"] is None
        assert await _enrollment_count(db_session, program.id) == 0

    @pytest.mark.parametrize("first, second", [("approve", "approve"), ("reject", "approve")])
    async def test_rereview_is_invalid_state(
        self, post, admin, student, program, db_session, first, second
    ) -> None:
        application = await _apply(post, student, program)
        await post(admin, "review_application", applicationId=application["id"], reviewAction=first)
        before = await _enrollment_count(db_session, program.id)

        response = await post(
            admin, "review_application", applicationId=application["id"], reviewAction=second
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "invalid_state"
        assert response.json()["error"].startswith("Application is already")
        assert await _enrollment_count(db_session, program.id) == before

    async def test_unknown_application(self, post, admin) -> None:
        response = await post(
            admin,
            "review_application",
            applicationId="00000000-0000-0000-0000-000000000000",
            reviewAction="approve",
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Application not found"

    async def test_invalid_review_action(self, post, admin, student, program) -> None:
        application = await _apply(post, student, program)

        response = await post(
            admin, "review_application", applicationId=application["id"], reviewAction="defer"
        )

        assert response.status_code == 400

    async def test_students_cannot_review(self, post, student, other_student, program) -> None:
        application = await _apply(post, other_student, program)

        response = await post(
            student, "review_application", applicationId=application["id"], reviewAction="approve"
        )

        assert response.status_code == 403

    async def test_approval_idempotent_when_already_enrolled(
        self, post, admin, student, program, db_session
    ) -> None:
        """Approving for a student who is already enrolled adds no second enrollment."""
        application = await _apply(post, student, program)
        db_session.add(
            Enrollment(
                program_id=program.id, student_id=student.id, status=EnrollmentStatus.ACTIVE
            )
        )
        await db_session.commit()

        response = await post(
            admin, "review_application", applicationId=application["id"], reviewAction="approve"
        )

        assert response.status_code == 200
        assert response.json()["application"]["status"] == "approved"
        assert response.json()["enrollment"] is None
        assert await _enrollment_count(db_session, program.id) == 1


class TestCapacity:
    """Test capacity enforcement at approval time."""

    async def test_second_approval_exceeds_capacity(
        self, post, admin, student, other_student, make_program, db_session
    ) -> None:
        """Two applicants, one seat: the second approval fails and stays pending."""
        program = await make_program(title="One seat", max_students=1)
        first = await _apply(post, student, program)
        second = await _apply(post, other_student, program)

        approved = await post(
            admin, "review_application", applicationId=first["id"], reviewAction="approve"
        )
        refused = await post(
            admin, "review_application", applicationId=second["id"], reviewAction="approve"
        )

        assert approved.status_code == 200
        assert refused.status_code == 409
        assert refused.json() == {
            "error": "Program has reached maximum capacity",
            "kind": "capacity_exceeded",
        }

        application = await db_session.get(Application, UUID(second["id"]))
        assert application.status == ApplicationStatus.PENDING
        assert application.reviewed_at is None
        assert application.reviewed_by is None
        assert await _enrollment_count(db_session, program.id) == 1

    async def test_pending_application_can_be_approved_after_seat_frees(
        self, post, admin, student, other_student, make_program, db_session
    ) -> None:
        program = await make_program(title="One seat", max_students=1)
        first = await _apply(post, student, program)
        second = await _apply(post, other_student, program)
        await post(admin, "review_application", applicationId=first["id"], reviewAction="approve")
        await post(admin, "review_application", applicationId=second["id"], reviewAction="approve")

        await post(
            admin,
            "update_program",
            programId=str(program.id),
            title=program.title,
            status="open",
            maxStudents=2,
        )
        response = await post(
            admin, "review_application", applicationId=second["id"], reviewAction="approve"
        )

        assert response.status_code == 200
        assert await _enrollment_count(db_session, program.id) == 2

    async def test_unlimited_program_always_available(
        self, get, admin, program, make_profile, db_session
    ) -> None:
        for i in range(5):
            learner = await make_profile(f"learner{i}@example.com", UserRole.STUDENT)
            db_session.add(
                Enrollment(
                    program_id=program.id, student_id=learner.id, status=EnrollmentStatus.ACTIVE
                )
            )
        await db_session.commit()

        response = await get(admin, "check_capacity", programId=program.id)

        assert response.json() == {"success": True, "available": True, "current": 5, "max": 0}

    async def test_check_capacity_full(self, get, post, admin, student, make_program) -> None:
        program = await make_program(title="One seat", max_students=1)
        await post(admin, "create_enrollment", programId=str(program.id), studentId=str(student.id))

        response = await get(admin, "check_capacity", programId=program.id)

        assert response.json() == {"success": True, "available": False, "current": 1, "max": 1}

    async def test_check_capacity_unknown_program(self, get, admin) -> None:
        response = await get(
            admin, "check_capacity", programId="00000000-0000-0000-0000-000000000000"
        )

        assert response.status_code == 404


class TestMentorReview:
    """Test mentor permissions, resolved from both mentor sources."""

    async def test_mentor_assigned_via_table_can_review(
        self, post, admin, mentor, student, program, db_session
    ) -> None:
        db_session.add(ProgramMentor(program_id=program.id, mentor_id=mentor.id))
        await db_session.commit()
        application = await _apply(post, student, program)

        response = await post(
            mentor, "review_application", applicationId=application["id"], reviewAction="approve"
        )

        assert response.status_code == 200
        assert response.json()["application"]["reviewed_by"] == str(mentor.id)

    async def test_mentor_assigned_via_legacy_field_can_review(
        self, post, mentor, student, make_program
    ) -> None:
        program = await make_program(title="Legacy", mentor_id=mentor.id)
        application = await _apply(post, student, program)

        response = await post(
            mentor, "review_application", applicationId=application["id"], reviewAction="reject"
        )

        assert response.status_code == 200

    async def test_unassigned_mentor_forbidden(
        self, post, mentor, other_mentor, student, make_program
    ) -> None:
        program = await make_program(title="Someone else's", mentor_id=other_mentor.id)
        application = await _apply(post, student, program)

        response = await post(
            mentor, "review_application", applicationId=application["id"], reviewAction="approve"
        )

        assert response.status_code == 403
        assert response.json()["error"] == "You do not have permission to review this application"


class TestListings:
    """Test application and enrollment listings."""

    async def test_mentor_sees_only_own_program_applications(
        self, get, post, mentor, student, other_student, make_program
    ) -> None:
        mine = await make_program(title="Mine", mentor_id=mentor.id)
        theirs = await make_program(title="Theirs")
        await _apply(post, student, mine)
        await _apply(post, other_student, theirs)

        response = await get(mentor, "get_applications")

        applications = response.json()["applications"]
        assert [a["program_id"] for a in applications] == [str(mine.id)]

    async def test_mentor_without_programs_sees_nothing(self, get, mentor, student, program, post) -> None:
        await _apply(post, student, program)

        response = await get(mentor, "get_applications")

        assert response.json() == {"success": True, "applications": []}

    async def test_admin_filters_by_program(self, get, post, admin, student, program, make_program) -> None:
        other = await make_program(title="Other")
        await _apply(post, student, program)
        await _apply(post, student, other)

        response = await get(admin, "get_applications", programId=other.id)

        assert [a["program_id"] for a in response.json()["applications"]] == [str(other.id)]

    async def test_students_cannot_list_all_applications(self, get, student) -> None:
        response = await get(student, "get_applications")

        assert response.status_code == 403

    async def test_my_applications(self, get, post, student, other_student, program) -> None:
        await _apply(post, student, program)
        await _apply(post, other_student, program)

        response = await get(student, "get_my_applications")

        applications = response.json()["applications"]
        assert len(applications) == 1
        assert applications[0]["student_id"] == str(student.id)

    async def test_my_enrollments(self, get, post, admin, student, program) -> None:
        await post(admin, "create_enrollment", programId=str(program.id), studentId=str(student.id))

        response = await get(student, "get_my_enrollments")

        enrollments = response.json()["enrollments"]
        assert [e["program_id"] for e in enrollments] == [str(program.id)]

    async def test_get_enrollment_defaults_to_caller(self, get, post, admin, student, program) -> None:
        none_yet = await get(student, "get_enrollment", programId=program.id)
        await post(admin, "create_enrollment", programId=str(program.id), studentId=str(student.id))
        enrolled = await get(student, "get_enrollment", programId=program.id)

        assert none_yet.json() == {"success": True, "enrollment": None}
        assert enrolled.json()["enrollment"]["student_id"] == str(student.id)

    async def test_student_cannot_read_other_enrollment(
        self, get, student, other_student, program
    ) -> None:
        response = await get(
            student, "get_enrollment", programId=program.id, studentId=other_student.id
        )

        assert response.status_code == 403

    async def test_enrollments_for_admin(self, get, post, admin, student, other_student, program) -> None:
        await post(admin, "create_enrollment", programId=str(program.id), studentId=str(student.id))
        await post(
            admin, "create_enrollment", programId=str(program.id), studentId=str(other_student.id)
        )

        response = await get(admin, "get_enrollments", programId=program.id)

        assert len(response.json()["enrollments"]) == 2


class TestUpdateEnrollment:
    """Test enrollment status changes."""

    async def _enroll(self, post, admin, student, program) -> dict:
        response = await post(
            admin, "create_enrollment", programId=str(program.id), studentId=str(student.id)
        )
        return response.json()["enrollment"]

    async def test_complete_stamps_completed_at(self, post, admin, student, program) -> None:
        enrollment = await self._enroll(post, admin, student, program)

        response = await post(
            admin, "update_enrollment", enrollmentId=enrollment["id"], status="completed"
        )

        assert response.status_code == 200
        data = response.json()["enrollment"]
        assert data["status"] == "completed"
        assert data["completed_at"] is not None

    async def test_drop_clears_completed_at(self, post, admin, student, program) -> None:
        enrollment = await self._enroll(post, admin, student, program)
        await post(admin, "update_enrollment", enrollmentId=enrollment["id"], status="completed")

        response = await post(
            admin, "update_enrollment", enrollmentId=enrollment["id"], status="dropped"
        )

        data = response.json()["enrollment"]
        assert data["status"] == "dropped"
        assert data["completed_at"] is None

    async def test_no_status_returns_unchanged(self, post, admin, student, program) -> None:
        enrollment = await self._enroll(post, admin, student, program)

        response = await post(admin, "update_enrollment", enrollmentId=enrollment["id"])

        assert response.status_code == 200
        assert response.json()["message"] == "Enrollment retrieved successfully (no fields to update)"
        assert response.json()["enrollment"]["status"] == "active"

    async def test_invalid_status(self, post, admin, student, program) -> None:
        enrollment = await self._enroll(post, admin, student, program)

        response = await post(
            admin, "update_enrollment", enrollmentId=enrollment["id"], status="paused"
        )

        assert response.status_code == 400

    async def test_unassigned_mentor_forbidden(self, post, admin, mentor, student, program) -> None:
        enrollment = await self._enroll(post, admin, student, program)

        response = await post(
            mentor, "update_enrollment", enrollmentId=enrollment["id"], status="completed"
        )

        assert response.status_code == 403

    async def test_student_forbidden(self, post, admin, student, program) -> None:
        enrollment = await self._enroll(post, admin, student, program)

        response = await post(
            student, "update_enrollment", enrollmentId=enrollment["id"], status="dropped"
        )

        assert response.status_code == 403
