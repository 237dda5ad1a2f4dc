from __future__ import annotations

import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for domain errors translated to a fixed status/code at the boundary."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        errors: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.errors = errors

    def __str__(self) -> str:
        return self.message


class ValidationError(AppError):
    status_code = 422
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"


class ResourceNotFoundError(AppError):
    status_code = 404
    code = "RESOURCE_NOT_FOUND"

    @classmethod
    def for_resource(cls, resource: str, identifier: Any) -> "ResourceNotFoundError":
        return cls(f"{resource} not found with identifier: {identifier}")


class BusinessConflictError(AppError):
    status_code = 409
    code = "BUSINESS_CONFLICT"


class AccessDeniedError(AppError):
    status_code = 403
    code = "ACCESS_DENIED"


def raise_for_errors(errors: dict[str, str], message: str = "Validation failed") -> None:
    if errors:
        raise ValidationError(message, errors=errors)


def _default_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        401: "AUTHENTICATION_ERROR",
        403: "ACCESS_DENIED",
        404: "ENDPOINT_NOT_FOUND",
        405: "METHOD_NOT_SUPPORTED",
        409: "BUSINESS_CONFLICT",
        422: "VALIDATION_ERROR",
        429: "RATE_LIMITED",
    }
    return mapping.get(status_code, "HTTP_ERROR")


def _default_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Request failed"


def _build_response(
    status_code: int,
    code: str,
    message: str,
    errors: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": status_code,
        "code": code,
        "message": message,
    }
    if errors:
        payload["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload), headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("%s %s -> %s %s: %s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
    return _build_response(exc.status_code, exc.code, exc.message, exc.errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _default_code(exc.status_code)
    message = _default_message(exc.status_code)
    detail = exc.detail
    if isinstance(detail, dict):
        code = detail.get("code") or code
        message = detail.get("message") or message
    elif isinstance(detail, str) and detail:
        message = detail
    if exc.status_code == 404 and code == "ENDPOINT_NOT_FOUND" and message == "Not Found":
        message = f"Endpoint '{request.method} {request.url.path}' not found"
    elif exc.status_code == 405:
        message = f"HTTP method '{request.method}' is not supported for this endpoint"
    return _build_response(exc.status_code, code, message, headers=getattr(exc, "headers", None))


def _field_name(loc: Any) -> str:
    # Drop the request section (body/query/path) from the location
    parts = [str(part) for part in (loc or []) if part not in {"body", "query", "path", "header"}]
    return ".".join(parts) or "request"


def _clean_message(msg: str) -> str:
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    for error in errors:
        if error.get("type") == "json_invalid":
            return _build_response(400, "INVALID_JSON", "Invalid JSON format in request body")
        if error.get("type") == "missing" and tuple(error.get("loc") or ()) == ("body",):
            return _build_response(
                400, "MISSING_REQUEST_BODY", "Request body is required for this endpoint"
            )

    field_errors: dict[str, str] = {}
    for error in errors:
        field = _field_name(error.get("loc"))
        field_errors.setdefault(field, _clean_message(str(error.get("msg") or "Invalid value")))
    logger.warning("Request validation failed for %s %s: %s", request.method, request.url.path, field_errors)
    return _build_response(422, "VALIDATION_ERROR", "Validation failed", field_errors)


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    headers = getattr(exc, "headers", None)
    return _build_response(
        429,
        "RATE_LIMITED",
        "Too many requests; try again later",
        headers=headers if isinstance(headers, dict) else None,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return _build_response(
        status_code=500,
        code="INTERNAL_SERVER_ERROR",
        message="An unexpected error occurred. Please try again later",
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
