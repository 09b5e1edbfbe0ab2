"""Exception types and handlers for consistent error responses.

Every error the service surfaces carries a ``kind`` from the dashboard's
error taxonomy (Unauthorized, NotFound, Network, Validation) so the
dashboard chrome can tell a "step not completed" panel from a real failure.
"""

import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    NETWORK = "Network"
    VALIDATION = "Validation"


@dataclass(frozen=True)
class ErrorInfo:
    """Error value handed upward instead of raising."""
    kind: ErrorKind
    message: str


class DriveDockException(Exception):
    """Base exception for DriveDock application errors."""

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(kind=self.kind, message=self.message)


class StepNotReachedError(DriveDockException):
    """The driver has not reached the step that owns this section yet."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Driver hasn't completed this step yet"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="STEP_NOT_REACHED",
        )


class ResourceNotFoundError(DriveDockException):
    """Exception for resources not found."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class RecordAPIError(DriveDockException):
    """The record API failed or could not be reached. Retryable."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, upstream_status: int | None = None):
        self.upstream_status = upstream_status
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_code="RECORD_API_ERROR",
        )


class BusinessLogicError(DriveDockException):
    """Exception for business rule violations (caught before any network call)."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, error_code: str = "BUSINESS_LOGIC_ERROR"):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
        )


class CommitInProgressError(DriveDockException):
    """Another write (usually a commit) to the same session is still running."""

    kind = ErrorKind.VALIDATION

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Session {session_id} is busy: a commit is in progress",
            status_code=status.HTTP_409_CONFLICT,
            error_code="COMMIT_IN_PROGRESS",
        )


def status_for_error(error: ErrorInfo) -> int:
    """HTTP status used when an ErrorInfo value is rendered as a response."""
    return {
        ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
        ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
        ErrorKind.NETWORK: status.HTTP_502_BAD_GATEWAY,
        ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    }[error.kind]


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    kind: str | None = None,
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Create standardized error response.

    Format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable error message",
            "kind": "Unauthorized | NotFound | Network | Validation",
            "details": {...}  // Optional additional details
        }
    }
    """
    content = {
        "error": {
            "code": error_code,
            "message": message,
        }
    }

    if kind:
        content["error"]["kind"] = kind
    if details:
        content["error"]["details"] = details

    return JSONResponse(
        status_code=status_code,
        content=content,
    )


async def drivedock_exception_handler(
    request: Request,
    exc: DriveDockException,
) -> JSONResponse:
    """Handle custom DriveDock exceptions."""
    logger.warning(
        f"DriveDock exception: {exc.error_code} - {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        kind=exc.kind.value,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    if exc.status_code >= 500:
        logger.error(
            f"HTTP {exc.status_code}: {exc.detail}",
            extra={
                "path": request.url.path,
                "method": request.method,
            },
        )

    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.warning(
        f"Validation error on {request.url.path}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": exc.errors(),
        },
    )

    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        kind=ErrorKind.VALIDATION.value,
        details={"errors": errors},
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger.error(
        f"Unhandled exception on {request.url.path}: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc(),
        },
        exc_info=True,
    )

    # Return generic error to client (don't expose internal details)
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(DriveDockException, drivedock_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
