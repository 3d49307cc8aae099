"""
Unit tests for service error translation.
"""

import pytest
from fastapi import HTTPException

from bursary.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
    internal_server_error,
    raise_http_error,
)


class TestRaiseHttpError:
    """Tests for raise_http_error."""

    @pytest.mark.parametrize(
        ("error", "status_code", "code"),
        [
            (NotFoundError(), 404, "RESOURCE_NOT_FOUND"),
            (ConflictError("taken"), 409, "DUPLICATE_RESOURCE"),
            (InvalidTransitionError("PENDING -> APPROVED"), 409, "INVALID_STATE_TRANSITION"),
            (ValidationFailedError("bad"), 422, "VALIDATION_ERROR"),
        ],
    )
    def test_maps_status_and_code(self, error, status_code, code):
        with pytest.raises(HTTPException) as exc_info:
            raise_http_error(error)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.detail["error"] == code
        assert exc_info.value.detail["message"] == error.message

    def test_internal_error_hides_detail(self):
        error = internal_server_error()

        assert error.status_code == 500
        assert error.detail == {
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        }
