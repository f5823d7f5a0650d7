"""Engine error taxonomy and error-to-response mapping."""

from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel


class EngineError(Exception):
    """Base class for errors raised by the task engine."""

    code: str = "ERR_UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EngineError):
    """A field-level invariant was violated; the caller must correct the input."""

    code = "ERR_VALIDATION"

    def __init__(self, details: dict[str, str], message: str = "Validation error") -> None:
        super().__init__(message)
        self.details = details

    def __str__(self) -> str:
        fields = ", ".join(f"{field}: {reason}" for field, reason in self.details.items())
        return f"{self.message} ({fields})" if fields else self.message

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        """Build a field-keyed ValidationError from a pydantic ValidationError."""
        details: dict[str, str] = {}
        for error in exc.errors():
            loc = [str(part) for part in error["loc"] if not isinstance(part, int)]
            field = ".".join(to_camel(part) if "_" in part else part for part in loc) or "__root__"
            details.setdefault(field, error["msg"])
        return cls(details)


class NotFoundError(EngineError):
    """The id is absent or belongs to another account."""

    code = "ERR_NOT_FOUND"


class InvalidReferenceError(EngineError):
    """A referenced task or family member belongs to a different account."""

    code = "ERR_INVALID_REFERENCE"


class ErrorCode:
    """Error codes exposed to callers."""

    ERR_VALIDATION = ValidationError.code
    ERR_NOT_FOUND = NotFoundError.code
    ERR_INVALID_REFERENCE = InvalidReferenceError.code
    ERR_UNKNOWN = EngineError.code


class ErrorResponse(BaseModel):
    """Structured error response for the HTTP layer."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    status_code: int = Field(default=500, exclude=True)


def error_response_for(exception: Exception) -> ErrorResponse:
    """Map an exception to a structured error response.

    Args:
        exception: The exception raised by an engine operation

    Returns:
        ErrorResponse with code, message, details and HTTP status code
    """
    if isinstance(exception, PydanticValidationError):
        exception = ValidationError.from_pydantic(exception)

    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=exception.message,
            details=exception.details,
            status_code=422,
        )

    if isinstance(exception, NotFoundError):
        return ErrorResponse(code=ErrorCode.ERR_NOT_FOUND, message=exception.message, status_code=404)

    if isinstance(exception, InvalidReferenceError):
        return ErrorResponse(code=ErrorCode.ERR_INVALID_REFERENCE, message=exception.message, status_code=409)

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        status_code=500,
    )
