"""RFC 7807 Problem Details exception handlers for FastAPI.

This module provides exception handlers that translate domain exceptions
into standardized HTTP responses following RFC 7807 Problem Details for
HTTP APIs. All handlers return responses with Content-Type: application/problem+json.

Usage:
    from bulkpurge.infra.fastapi.error_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from bulkpurge.foundation.domain.exceptions import (
    AuthorizationError,
    ConflictError,
    DomainError,
    ExternalServiceError,
    GateError,
    ValidationError,
)
from bulkpurge.infra.fastapi.middleware.request_id import get_request_id

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details response model.

    Standard fields:
    - type: URI reference identifying the problem type
    - title: Short human-readable summary
    - status: HTTP status code
    - detail: Human-readable explanation
    - instance: URI reference to specific occurrence

    Extension fields:
    - error_code: Machine-readable error code for client handling
    - context: Structured debugging information
    - correlation_id: Request correlation ID (5xx errors only)
    """

    type: str = Field(
        ...,
        description="URI reference identifying problem type",
        examples=["/errors/conflict", "/errors/validation-error"],
    )
    title: str = Field(
        ...,
        description="Short human-readable summary",
        examples=["Conflict", "Validation Error"],
    )
    status: int = Field(
        ...,
        ge=400,
        le=599,
        description="HTTP status code",
    )
    detail: str = Field(
        ...,
        description="Human-readable explanation",
    )
    instance: str | None = Field(
        default=None,
        description="URI reference to specific occurrence (request path)",
    )
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code",
        examples=["EXCLUSIVITY_CONFLICT", "VALIDATION_ERROR"],
    )
    context: dict[str, Any] | None = Field(
        default=None,
        description="Structured debugging information",
    )
    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for support requests",
    )


# Patterns for sensitive data
_SENSITIVE_PATTERNS = [
    (
        re.compile(r"postgresql(\+\w+)?://[^@]*@[^/\s]*"),
        "postgresql://[REDACTED]@[REDACTED]",
    ),
    (
        re.compile(r"password\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "password=[REDACTED]",
    ),
    (
        re.compile(r"token\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "token=[REDACTED]",
    ),
    (
        re.compile(r"bearer\s+[A-Za-z0-9._\-]+", re.IGNORECASE),
        "Bearer [REDACTED]",
    ),
]


def _create_problem_response(problem: ProblemDetail) -> JSONResponse:
    """Create JSONResponse with RFC 7807 content type."""
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _get_correlation_id() -> str:
    """Request ID set by RequestIdMiddleware, or "unknown" outside a request."""
    request_id = get_request_id()
    return request_id if request_id else "unknown"


def _sanitize_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    """Sanitize context dictionary for safe inclusion in responses.

    - Converts UUIDs and datetimes to strings
    - Removes or redacts sensitive values (passwords, tokens, etc.)
    - Handles non-serializable types gracefully

    Args:
        context: Context dictionary from exception

    Returns:
        Sanitized context dictionary, or None if input is None
    """
    if context is None:
        return None

    sanitized = {}
    for key, value in context.items():
        if _is_sensitive_key(key):
            continue
        sanitized[key] = _sanitize_value(value)

    return sanitized if sanitized else None


def _is_sensitive_key(key: str) -> bool:
    sensitive_keys = {"password", "secret", "token", "api_key", "apikey", "credential"}
    return key.lower() in sensitive_keys


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str):
        return _redact_sensitive_strings(value)
    if isinstance(value, dict):
        return _sanitize_context(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(v) for v in value]
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


def _redact_sensitive_strings(text: str) -> str:
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


async def validation_error_handler(
    request: Request,
    exc: ValidationError,
) -> JSONResponse:
    """Translate ValidationError to 422.

    The detail is the validation reason verbatim, so chat clients can echo
    it back to the administrator who typed the command.
    """
    problem = ProblemDetail(
        type="/errors/validation-error",
        title="Validation Error",
        status=422,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def conflict_error_handler(
    request: Request,
    exc: ConflictError,
) -> JSONResponse:
    """Translate ConflictError (a purge job already running) to 409."""
    problem = ProblemDetail(
        type="/errors/conflict",
        title="Conflict",
        status=409,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def authorization_error_handler(
    request: Request,
    exc: AuthorizationError,
) -> JSONResponse:
    """Translate AuthorizationError to 403 Forbidden.

    Args:
        request: FastAPI request object.
        exc: AuthorizationError instance.

    Returns:
        JSONResponse with 403 status and problem details.
    """
    problem = ProblemDetail(
        type="/errors/forbidden",
        title="Forbidden",
        status=403,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context) if exc.context else None,
    )
    return _create_problem_response(problem)


async def external_service_error_handler(
    request: Request,
    exc: ExternalServiceError,
) -> JSONResponse:
    """Translate ExternalServiceError to 502 Bad Gateway."""
    problem = ProblemDetail(
        type="/errors/external-service-error",
        title="Bad Gateway",
        status=502,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
        correlation_id=_get_correlation_id(),
    )
    return _create_problem_response(problem)


async def gate_error_handler(
    request: Request,
    exc: GateError,
) -> JSONResponse:
    """Translate GateError (Redis unreachable) to 503 Service Unavailable."""
    problem = ProblemDetail(
        type="/errors/gate-unavailable",
        title="Service Unavailable",
        status=503,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
        correlation_id=_get_correlation_id(),
    )
    return _create_problem_response(problem)


async def domain_error_handler(
    request: Request,
    exc: DomainError,
) -> JSONResponse:
    """Translate generic DomainError to 400 Bad Request.

    This is the fallback handler for domain errors that don't have
    a more specific handler.
    """
    problem = ProblemDetail(
        type="/errors/domain-error",
        title="Bad Request",
        status=400,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Translate Pydantic RequestValidationError to 422.

    This handles FastAPI's built-in validation of request bodies,
    headers, and query parameters.
    """
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "loc": list(error.get("loc", [])),
                "msg": error.get("msg", ""),
                "type": error.get("type", ""),
            }
        )

    problem = ProblemDetail(
        type="/errors/request-validation-error",
        title="Request Validation Error",
        status=422,
        detail="Request validation failed",
        instance=str(request.url.path),
        error_code="REQUEST_VALIDATION_ERROR",
        context={"errors": errors},
    )
    return _create_problem_response(problem)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions.

    Logs full exception details for debugging but returns a sanitized
    response to the client. Includes correlation ID for support requests.

    In debug mode (APP_DEBUG=true), includes exception type and message.
    In production, returns generic error message only.
    """
    correlation_id = _get_correlation_id()

    logger.exception(
        "unhandled_exception",
        extra={
            "correlation_id": correlation_id,
            "path": str(request.url.path),
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
    )

    debug_mode = getattr(request.app, "debug", False)

    if debug_mode:
        detail = f"{type(exc).__name__}: {_redact_sensitive_strings(str(exc))}"
        context: dict[str, Any] | None = {"exception_type": type(exc).__name__}
    else:
        detail = "An internal error occurred. Please contact support with the correlation ID."
        context = None

    problem = ProblemDetail(
        type="/errors/internal-error",
        title="Internal Server Error",
        status=500,
        detail=detail,
        instance=str(request.url.path),
        error_code="INTERNAL_ERROR",
        context=context,
        correlation_id=correlation_id,
    )
    return _create_problem_response(problem)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on FastAPI application.

    Handlers are registered from most specific to least specific:
    1. AuthorizationError -> 403
    2. ValidationError -> 422
    3. ConflictError -> 409 (includes ExclusivityConflictError)
    4. ExternalServiceError -> 502
    5. GateError -> 503
    6. DomainError -> 400 (base class fallback)
    7. RequestValidationError -> 422 (Pydantic)
    8. Exception -> 500 (catch-all)

    Args:
        app: FastAPI application instance
    """
    # Note: Type ignores needed due to Starlette's overly strict handler typing
    app.add_exception_handler(
        AuthorizationError,
        authorization_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ValidationError,
        validation_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ConflictError,
        conflict_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ExternalServiceError,
        external_service_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        GateError,
        gate_error_handler,  # type: ignore[arg-type]
    )

    app.add_exception_handler(
        DomainError,
        domain_error_handler,  # type: ignore[arg-type]
    )

    app.add_exception_handler(
        RequestValidationError,
        request_validation_handler,  # type: ignore[arg-type]
    )

    app.add_exception_handler(Exception, unhandled_exception_handler)
