"""
Tests for application error handlers.
"""

import json
import logging

from fastapi import Request

from cohortly.core.errors import CapacityExceeded, CohortlyError, NotFound
from cohortly.main import app, handle_cohortly_error


def _request(path: str = "/api/v1/actions") -> Request:
    return Request({"type": "http", "method": "POST", "path": path, "headers": []})


class TestCohortlyErrorHandler:
    """Test rendering of CohortlyError subclasses."""

    async def test_renders_status_and_body(self) -> None:
        response = await handle_cohortly_error(_request(), CapacityExceeded())

        assert response.status_code == 409
        assert json.loads(response.body) == {
            "error": "Program has reached maximum capacity",
            "kind": "capacity_exceeded",
        }

    async def test_custom_message(self) -> None:
        response = await handle_cohortly_error(_request(), NotFound("Program not found"))

        assert response.status_code == 404
        assert json.loads(response.body)["error"] == "Program not found"

    async def test_server_errors_are_logged(self, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="cohortly.main"):
            response = await handle_cohortly_error(_request(), CohortlyError())

        assert response.status_code == 500
        assert "Internal server error" in caplog.text

    def test_registered_for_base_class(self) -> None:
        assert app.exception_handlers[CohortlyError] is handle_cohortly_error
