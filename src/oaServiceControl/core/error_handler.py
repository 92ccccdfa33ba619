"""
Unified error handling middleware and utilities for oaServiceControl.

This module provides centralized error handling, logging, and response
formatting so that every endpoint reports failures the same way.
"""

import logging
import traceback

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from ..models.operations import OperationOutcome, OutcomeKind
from .exceptions import (
    BaseServiceControlException,
    ErrorSeverity,
    HostUnreachableError,
    ServerNotFoundError,
    ServiceNotFoundError,
    SystemError,
    TransportError,
    ValidationError,
    convert_exception,
)
from .logging import get_request_id

logger = logging.getLogger(__name__)

OUTCOME_STATUS_CODES = {
    OutcomeKind.SUCCEEDED: 200,
    OutcomeKind.ALREADY_IN_TARGET_STATE: 200,
    OutcomeKind.CONFLICT: 409,
    OutcomeKind.INVALID_STATE: 400,
    OutcomeKind.FAILED: 500,
}

SEVERITY_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware that catches and formats all exceptions.

    Structured exceptions are rendered with their own payload; anything else
    is converted first and reported as an internal error.
    """

    def __init__(self, app, include_traceback: bool = False):
        super().__init__(app)
        self.include_traceback = include_traceback

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            # Let FastAPI handle its own exceptions
            raise
        except BaseServiceControlException as exc:
            return self._handle_service_exception(request, exc)
        except PydanticValidationError as exc:
            return self._handle_service_exception(
                request,
                ValidationError(
                    "Invalid data",
                    details={"errors": exc.errors(include_url=False, include_context=False)}
                )
            )
        except Exception as exc:
            return self._handle_generic_exception(request, exc)

    def _handle_service_exception(
        self,
        request: Request,
        exc: BaseServiceControlException
    ) -> JSONResponse:
        logger.log(
            SEVERITY_LOG_LEVELS.get(exc.severity, logging.ERROR),
            f"API Error [{exc.error_code}]: {exc.message}",
            extra={
                "error_code": exc.error_code,
                "category": exc.category.value,
                "severity": exc.severity.value,
                "endpoint": str(request.url),
                "method": request.method,
                "details": exc.details
            }
        )

        extra = None
        if self.include_traceback:
            extra = {"traceback": traceback.format_exc().split('\n')}

        return create_error_response(
            exc,
            get_http_status_code(exc),
            get_request_id(),
            extra=extra
        )

    def _handle_generic_exception(self, request: Request, exc: Exception) -> JSONResponse:
        service_exc = convert_exception(
            exc,
            default_message="An unexpected error occurred",
            severity=ErrorSeverity.HIGH,
            details={
                "endpoint": str(request.url),
                "method": request.method
            }
        )

        # Unhandled, so always log at critical with the traceback
        logger.critical(
            f"Unhandled exception [{service_exc.error_code}]: {service_exc.message}",
            extra={
                "error_code": service_exc.error_code,
                "endpoint": str(request.url),
                "method": request.method,
                "traceback": traceback.format_exc()
            }
        )

        return self._handle_service_exception(request, service_exc)


def get_http_status_code(exc: BaseServiceControlException) -> int:
    """Map an exception to the HTTP status code reported for it."""
    if isinstance(exc, ServerNotFoundError | ServiceNotFoundError):
        return 404
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, HostUnreachableError | TransportError):
        return 502
    return 500


def get_outcome_status_code(outcome: OperationOutcome) -> int:
    """Map an operation outcome to the HTTP status code reported for it."""
    return OUTCOME_STATUS_CODES[outcome.kind]


def create_error_response(
    error: str | Exception,
    status_code: int = 500,
    request_id: str | None = None,
    extra: dict | None = None
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        error: Error message or exception
        status_code: HTTP status code
        request_id: Optional request ID for tracing
        extra: Additional top-level fields for the body

    Returns:
        JSONResponse with error details
    """
    if isinstance(error, str):
        exc = SystemError(error)
    elif isinstance(error, BaseServiceControlException):
        exc = error
    else:
        exc = convert_exception(error)

    response_data = exc.to_dict()
    response_data.update({
        "status": "error",
        "timestamp_epoch": int(exc.timestamp.timestamp()),
        "request_id": request_id
    })
    if extra:
        response_data.update(extra)

    return JSONResponse(
        status_code=status_code,
        content=response_data
    )
