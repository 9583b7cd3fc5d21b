"""
ielts_backend/errors.py
Centralized API error handling

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 200: Successful, valid request
- 400: Invalid session state
- 403: Operation disabled for this deployment
- 404: Session or exam does not exist
- 422: Validation error (Pydantic)
- 429: Rate limit exceeded
- 500: Internal only, never caused by a submission payload
"""

from typing import Optional, Dict, Any
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    FORBIDDEN = "FORBIDDEN"
    FEATURE_DISABLED = "FEATURE_DISABLED"

    NOT_FOUND = "NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"

    INVALID_STATE = "INVALID_STATE"
    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"
    NOT_SUBMITTED = "NOT_SUBMITTED"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return ErrorResponse(
            error=self.error,
            message=self.message,
            code=self.code,
            details=self.details or None
        ).model_dump(exclude_none=True)

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class ForbiddenError(APIError):
    """403 Forbidden - Operation not allowed"""
    def __init__(self, message: str, code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class InvalidStateError(APIError):
    """400 Bad Request - Operation not valid in the current session state"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_STATE, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Invalid State",
            message=message,
            code=code,
            details=details
        )


def session_not_found(session_id: Any) -> NotFoundError:
    return NotFoundError("Exam session", session_id, ErrorCode.SESSION_NOT_FOUND)


def already_submitted(session_id: Any) -> InvalidStateError:
    return InvalidStateError(
        "Exam has already been submitted",
        code=ErrorCode.ALREADY_SUBMITTED,
        details={"session_id": str(session_id)}
    )
