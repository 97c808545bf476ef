"""API error types and the handlers that render them as error envelopes.

Every failure leaves the API as:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}

Services raise the ApiError subclasses below; route handlers do not build
error responses themselves.
"""

import enum
import logging
from typing import Any, TypeVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ErrorCode(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DUPLICATE = "DUPLICATE"


class ApiError(Exception):
    """Base class for errors that map onto the response envelope."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFoundError(ApiError):
    code = ErrorCode.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource", details: dict[str, Any] | None = None):
        super().__init__(f"{resource} not found", details)


class UnauthorizedError(ApiError):
    code = ErrorCode.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(ApiError):
    code = ErrorCode.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class ValidationFailedError(ApiError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class DuplicateError(ApiError):
    code = ErrorCode.DUPLICATE
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, resource: str = "Resource", details: dict[str, Any] | None = None):
        super().__init__(f"{resource} already exists", details)


class RateLimitedError(ApiError):
    code = ErrorCode.RATE_LIMITED
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later"


_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.VALIDATION_ERROR,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorCode.DUPLICATE,
    422: ErrorCode.VALIDATION_ERROR,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCode.RATE_LIMITED,
}


def error_body(code: ErrorCode, message: str, details: dict[str, Any] | None = None) -> dict:
    """Build the error envelope."""
    error: dict[str, Any] = {"code": code.value, "message": message}
    if details:
        error["details"] = details
    return {"success": False, "error": error}


def flatten_validation_errors(errors: list[dict]) -> dict[str, Any]:
    """Group pydantic errors by field name, mirroring a flattened form error."""
    field_errors: dict[str, list[str]] = {}
    form_errors: list[str] = []
    for err in errors:
        message = err.get("msg", "Invalid value")
        # loc is ("query", "limit") / ("body", "name") / ("body", 1) for a JSON decode offset
        loc = [part for part in err.get("loc", ()) if part not in ("query", "body", "path")]
        if any(isinstance(part, str) for part in loc):
            field_errors.setdefault(".".join(str(part) for part in loc), []).append(message)
        else:
            form_errors.append(message)
    return {"formErrors": form_errors, "fieldErrors": field_errors}


async def parse_json_body(request: Request, model: type[ModelT]) -> ModelT:
    """
    Validate the request's JSON body against ``model``.

    Handlers call this themselves instead of declaring a body parameter:
    FastAPI decodes declared bodies before dependencies run, so a malformed
    body would otherwise be reported ahead of a missing session or role.
    """
    try:
        return model.model_validate_json(await request.body())
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            ErrorCode.VALIDATION_ERROR,
            "Invalid request parameters",
            flatten_validation_errors(exc.errors()),
        ),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    client_ip = request.client.host if request.client else "unknown"
    logger.warning(f"Rate limit exceeded for {client_ip} on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_body(ErrorCode.RATE_LIMITED, RateLimitedError.default_message),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else code.value
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Internals are logged, never returned
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(ErrorCode.INTERNAL_ERROR, ApiError.default_message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing exception handlers on the app."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
