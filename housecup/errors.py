"""
housecup/errors.py
Centralized HTTP error handling

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
- 400: Invalid input (bad subject, self vote, word index, ...)
- 404: Guest or house does not exist
- 409: Conflicts with current state (voting closed, duplicate ballot, ...)
- 422: Validation error (Pydantic)
- 429: Rate limit exceeded
- 500: NEVER caused by user input (internal only)
"""

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import status
from fastapi.responses import JSONResponse

from housecup.exceptions import HouseCupError

logger = logging.getLogger(__name__)


class ErrorCode:
    """Codes not tied to a domain error class"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Validation Error",
    429: "Too Many Requests",
    500: "Internal Error",
}


class APIError(Exception):
    """HTTP-facing exception with the standard envelope"""

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

    @classmethod
    def from_domain(cls, exc: HouseCupError) -> "APIError":
        return cls(
            status_code=exc.status_code,
            error=ERROR_TITLES.get(exc.status_code, "Error"),
            message=exc.message,
            code=exc.code,
            details=exc.details or None
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


def domain_error_response(exc: HouseCupError) -> JSONResponse:
    """Map a domain error to its status code and envelope."""
    return APIError.from_domain(exc).to_response()


def internal_error_response(exc: Exception, context: str = "") -> JSONResponse:
    """Log an unexpected failure and return a safe 500 carrying a log id."""
    log_id = str(uuid.uuid4())[:8]
    logger.error(f"[{log_id}] Internal error in {context}: {type(exc).__name__}: {str(exc)}")
    return APIError(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error="Internal Error",
        message="An unexpected error occurred. Please try again later.",
        code=ErrorCode.INTERNAL_ERROR,
        details={"log_id": log_id}
    ).to_response()


def rate_limited_response(limit: str) -> JSONResponse:
    """429 in the standard envelope, naming the limit that was hit."""
    return APIError(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        error=ERROR_TITLES[429],
        message=f"Rate limit exceeded: {limit}",
        code=ErrorCode.RATE_LIMITED,
        details={"limit": limit}
    ).to_response()
