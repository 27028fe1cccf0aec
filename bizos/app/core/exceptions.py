"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
Domain services raise these directly; the handlers below turn them into
the common ``{"error_code", "message", "details"}`` response body.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict
from bizos.app.core.observability import CORRELATION_HEADER, correlation_id_for

logger = logging.getLogger("bizos.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Raised when input is malformed or out of range. Nothing has been written."""

    def __init__(self, message: str, details: Dict[str, Any] = None, error_code: str = "ERR_VALIDATION_001"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class InsufficientPointsError(ValidationError):
    """Raised when a customer tries to redeem more loyalty points than they hold."""

    def __init__(self, available: Any, required: Any):
        super().__init__(
            message=f"Insufficient loyalty balance. Available: {available}, Required: {required}",
            details={"available": str(available), "required": str(required)},
            error_code="ERR_LOYALTY_001"
        )


class NotFoundError(AppException):
    """Raised when a referenced entity is absent."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ImbalanceError(AppException):
    """Raised when a posting's debits and credits do not agree."""

    def __init__(self, total_debit: Any, total_credit: Any):
        super().__init__(
            message=f"Transaction is not balanced. Debit: {total_debit}, Credit: {total_credit}",
            error_code="ERR_LEDGER_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"total_debit": str(total_debit), "total_credit": str(total_credit)}
        )


class ConcurrencyError(AppException):
    """Raised when a lost update or a competing maintenance run is detected."""

    def __init__(self, message: str = "Concurrent modification detected", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONCURRENCY_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER",
}


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: Any,
    details: Dict[str, Any] = None,
    headers: Dict[str, str] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "details": details or {}},
        headers={**(headers or {}), CORRELATION_HEADER: correlation_id_for(request)},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Domain errors raised by services and guards."""
    logger.info(
        "%s %s failed with %s: %s", request.method, request.url.path, exc.error_code, exc.message,
        extra={"correlation_id": correlation_id_for(request), "error_code": exc.error_code}
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return _error_response(request, exc.status_code, exc.error_code, exc.message, exc.details, headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(
        request,
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"),
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request bodies and parameters that fail pydantic validation."""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return _error_response(
        request, status.HTTP_422_UNPROCESSABLE_ENTITY, "ERR_VALIDATION", "Validation error", {"errors": errors}
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unhandled: log with traceback, answer with an opaque 500."""
    logger.exception(
        "Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path,
        extra={"correlation_id": correlation_id_for(request)}
    )
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "ERR_INTERNAL_SERVER", "An internal server error occurred"
    )
