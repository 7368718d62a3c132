"""
Custom exception classes and error handlers.

Every error leaves the API in the same envelope:

    {"error": {"type": "validation_error", "message": "...", "details": [...]}}
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """Base API exception carrying an error type for the response envelope."""

    error_type = "server_error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message
        self.details = details


class ValidationError(APIError):
    """Malformed input. Details are a list of {field, message}."""

    error_type = "validation_error"

    def __init__(self, message: str = "Invalid request", details: Optional[List[dict]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details=details)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, details=[{"field": field, "message": message}])


class AuthorizationError(APIError):
    error_type = "authorization_error"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(APIError):
    """Authenticated, but not allowed to do this."""

    error_type = "authorization_error"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class BusinessLogicError(APIError):
    """Domain rule violation (unknown reference, duplicate, no match)."""

    error_type = "business_logic_error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[Any] = None,
    ):
        super().__init__(message, status_code, details=details)


class NotFoundError(APIError):
    error_type = "not_found_error"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}", status.HTTP_404_NOT_FOUND
        )


class RateLimitExceededError(APIError):
    error_type = "rate_limit_error"

    def __init__(self, message: str = "Too many requests, please try again later", retry_after: int = 60):
        super().__init__(
            message,
            status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(retry_after)},
        )


class ServiceUnavailableAPIError(APIError):
    error_type = "service_unavailable_error"

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class DatabaseError(APIError):
    error_type = "database_error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


# =============================================================================
# Handlers
# =============================================================================


_STATUS_ERROR_TYPES = {
    400: "validation_error",
    401: "authorization_error",
    403: "authorization_error",
    404: "not_found_error",
    405: "validation_error",
    409: "business_logic_error",
    422: "business_logic_error",
    429: "rate_limit_error",
    503: "service_unavailable_error",
}


def error_body(error_type: str, message: str, details: Optional[Any] = None) -> dict:
    error: Dict[str, Any] = {"type": error_type, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.error_type, exc.message, exc.details),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap plain HTTPExceptions (routing 404/405, framework errors) in the envelope."""
    error_type = _STATUS_ERROR_TYPES.get(exc.status_code, "server_error")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error_type, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def _field_name(loc: tuple) -> str:
    # Drop the "body"/"query" prefix FastAPI puts in front of the field path
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request validation failures as 400 with per-field details."""
    details = [
        {"field": _field_name(tuple(err.get("loc", ()))), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("validation_error", "Invalid request", details),
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("database_error", "Database operation failed"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("server_error", "Internal server error"),
    )
