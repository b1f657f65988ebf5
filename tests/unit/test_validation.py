"""
Unit Tests for Action Parameter Validation

Validation failures must name the parameter the way the client sent it.
"""

from uuid import uuid4

import pytest

from cohortly.core.errors import ValidationError
from cohortly.core.schemas import (
    CreateApplicationParams,
    CreateProgramParams,
    GradeSubmissionParams,
    ReviewApplicationParams,
)
from cohortly.core.validation import parse_params


class TestParseParams:
    """Test parse_params error messages."""

    def test_camel_case_params_accepted(self):
        program_id = uuid4()

        params = parse_params(
            CreateApplicationParams,
            {"programId": str(program_id), "applicationData": {"motivation": "Learn"}},
        )

        assert params.program_id == program_id
        assert params.application_data == {"motivation": "Learn"}

    def test_missing_field_named_in_camel_case(self):
        with pytest.raises(ValidationError, match="Missing programId"):
            parse_params(CreateApplicationParams, {"applicationData": {}})

    def test_invalid_choice(self):
        with pytest.raises(ValidationError, match="Invalid reviewAction"):
            parse_params(
                ReviewApplicationParams,
                {"applicationId": str(uuid4()), "reviewAction": "maybe"},
            )

    def test_empty_string_treated_as_missing(self):
        with pytest.raises(ValidationError, match="Missing title"):
            parse_params(CreateProgramParams, {"title": ""})

    def test_model_level_error_message(self):
        with pytest.raises(ValidationError, match="endDate must not be before startDate"):
            parse_params(
                CreateProgramParams,
                {"title": "Cohort", "startDate": "2025-03-01", "endDate": "2025-02-01"},
            )

    def test_negative_score_rejected(self):
        with pytest.raises(ValidationError, match="Invalid score"):
            parse_params(GradeSubmissionParams, {"submissionId": str(uuid4()), "score": -1})

    def test_unknown_keys_ignored(self):
        params = parse_params(CreateProgramParams, {"title": "Cohort", "colour": "blue"})
        assert params.title == "Cohort"
        assert params.mentor_ids == []

    def test_error_kind(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_params(CreateProgramParams, {})
        assert exc_info.value.status_code == 400
        assert exc_info.value.to_dict() == {"error": "Missing title", "kind": "validation_error"}
