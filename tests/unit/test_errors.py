"""Unit tests for the error taxonomy and response mapping."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.core.errors import (
    ErrorCode,
    InvalidReferenceError,
    NotFoundError,
    ValidationError,
    error_response_for,
)
from src.domain.family_member import FamilyMemberInput


@pytest.mark.unit
class TestErrorResponseFor:
    """Tests for error_response_for."""

    def test_validation_error(self):
        response = error_response_for(ValidationError({"name": "Name is required"}))

        assert response.code == ErrorCode.ERR_VALIDATION
        assert response.status_code == 422
        assert response.details == {"name": "Name is required"}

    def test_not_found(self):
        response = error_response_for(NotFoundError("Task not found: 7"))

        assert response.code == ErrorCode.ERR_NOT_FOUND
        assert response.status_code == 404
        assert response.message == "Task not found: 7"

    def test_invalid_reference(self):
        response = error_response_for(InvalidReferenceError("Family member 3 does not belong to this account"))

        assert response.code == ErrorCode.ERR_INVALID_REFERENCE
        assert response.status_code == 409

    def test_unexpected_error_hides_message(self):
        response = error_response_for(RuntimeError("Failed to list records from tasks: disk I/O error"))

        assert response.code == ErrorCode.ERR_UNKNOWN
        assert response.status_code == 500
        assert "disk" not in response.message

    def test_pydantic_errors_are_keyed_by_camel_case_field(self):
        with pytest.raises(PydanticValidationError) as exc_info:
            FamilyMemberInput.model_validate({"name": "Alex", "colorTag": "red"})

        response = error_response_for(exc_info.value)

        assert response.status_code == 422
        assert list(response.details) == ["colorTag"]

    def test_status_code_is_not_serialized(self):
        payload = error_response_for(NotFoundError("gone")).model_dump()

        assert payload == {"code": ErrorCode.ERR_NOT_FOUND, "message": "gone", "details": {}}


@pytest.mark.unit
class TestValidationError:
    """Tests for ValidationError."""

    def test_str_lists_fields(self):
        error = ValidationError({"name": "Name is required", "endDate": "Too early"})

        assert str(error) == "Validation error (name: Name is required, endDate: Too early)"

    def test_is_an_engine_error_with_code(self):
        assert ValidationError({}).code == "ERR_VALIDATION"
