"""
Unified Error Handling.

Maps every failure to a small, stable taxonomy that callers can rely on.

Key features:
1. Custom exception hierarchy
2. Caller-visible error codes (UNAUTHENTICATED, INVALID_ARGUMENT, NOT_FOUND, INTERNAL)
3. Consistent error responses
4. Pipeline-internal failures that never leak provider details
"""
import os
import logging
from typing import Dict, Any, Optional
from datetime import datetime
from enum import Enum
from dataclasses import dataclass
from uuid import uuid4

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Caller-visible error codes."""
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


# Error code to HTTP status mapping
ERROR_STATUS_MAP = {
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INTERNAL: 500,
}

HTTP_STATUS_CODES = {
    400: ErrorCode.INVALID_ARGUMENT,
    401: ErrorCode.UNAUTHENTICATED,
    403: ErrorCode.UNAUTHENTICATED,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.INVALID_ARGUMENT,
    422: ErrorCode.INVALID_ARGUMENT,
}


@dataclass
class ErrorResponse:
    """Standardized error response."""
    error_id: str
    code: str
    message: str
    status_code: int
    timestamp: str
    path: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result = {
            "error": {
                "id": self.error_id,
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }
        if self.path:
            result["error"]["path"] = self.path
        if self.details:
            result["error"]["details"] = self.details
        if self.suggestion:
            result["error"]["suggestion"] = self.suggestion
        return result


class AppException(Exception):
    """Base exception for caller-visible errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        self.suggestion = suggestion
        self.original_error = original_error
        self.status_code = ERROR_STATUS_MAP.get(code, 500)
        super().__init__(message)


class UnauthenticatedException(AppException):
    """Caller identity is missing."""

    def __init__(self, message: str = "User must be authenticated"):
        super().__init__(code=ErrorCode.UNAUTHENTICATED, message=message)


class ValidationException(AppException):
    """Invalid caller input, rejected before any store or model access."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(
            code=ErrorCode.INVALID_ARGUMENT,
            message=message,
            details=details,
            suggestion="Please check your input and try again"
        )


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str, resource_type: str = "User profile"):
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=message,
            details={"resource_type": resource_type}
        )


class InternalException(AppException):
    """Downstream failure translated to a generic message."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            code=ErrorCode.INTERNAL,
            message=message,
            suggestion="Please try again later",
            original_error=original_error
        )


class PipelineError(Exception):
    """Failure inside the recommendation pipeline. Never shown to callers as-is."""
    pass


class ModelUnavailable(PipelineError):
    """The model endpoint could not be reached or returned an error."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


class ModelParseFailure(PipelineError):
    """The model reply could not be turned into the expected structure."""

    def __init__(self, message: str, raw_text: str):
        self.raw_text = raw_text
        super().__init__(message)


def create_error_response(
    error: AppException,
    request: Optional[Request] = None
) -> ErrorResponse:
    """Create a standardized error response and log it with its id."""
    error_id = str(uuid4())

    log_message = f"Error {error_id} - {error.code.value}: {error.message}"
    if error.original_error is not None:
        logger.error(
            f"{log_message} (caused by {type(error.original_error).__name__}: {error.original_error})",
            extra={"error_id": error_id, "error_code": error.code.value}
        )
    elif error.status_code >= 500:
        logger.error(log_message, extra={"error_id": error_id, "error_code": error.code.value})
    else:
        logger.info(log_message, extra={"error_id": error_id, "error_code": error.code.value})

    return ErrorResponse(
        error_id=error_id,
        code=error.code.value,
        message=error.message,
        status_code=error.status_code,
        timestamp=datetime.utcnow().isoformat(),
        path=str(request.url.path) if request else None,
        details=error.details,
        suggestion=error.suggestion
    )


def _json_error(error_response: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.to_dict()
    )


def setup_error_handling(app):
    """Setup error handling for FastAPI app."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        return _json_error(create_error_response(exc, request))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
        error = ValidationException(
            "Request body is invalid",
            details={"fields": fields}
        )
        return _json_error(create_error_response(error, request))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        code = HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL)
        error_response = ErrorResponse(
            error_id=str(uuid4()),
            code=code.value,
            message=str(exc.detail),
            status_code=exc.status_code,
            timestamp=datetime.utcnow().isoformat(),
            path=str(request.url.path)
        )
        return _json_error(error_response)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        error_id = str(uuid4())
        logger.exception(f"Unhandled exception {error_id}")

        # Don't expose internal details in production
        is_debug = os.getenv("DEBUG", "false").lower() == "true"

        error_response = ErrorResponse(
            error_id=error_id,
            code=ErrorCode.INTERNAL.value,
            message=str(exc) if is_debug else "Internal server error",
            status_code=500,
            timestamp=datetime.utcnow().isoformat(),
            path=str(request.url.path),
            suggestion="Please try again later or contact support"
        )
        return _json_error(error_response)

    logger.info("Error handling configured")
