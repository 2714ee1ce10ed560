"""Domain exception hierarchy for type-safe error handling.

This module provides the base exception hierarchy for all purge errors.
Exceptions include structured error codes and context for consistent
status reporting, API error handling and logging.

Example:
    >>> from bulkpurge.foundation.domain.exceptions import ExternalServiceError
    >>> raise ExternalServiceError("account", "delete user", 500, target="a@old.test")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "ConflictError",
    "DomainError",
    "ExclusivityConflictError",
    "ExternalServiceError",
    "GateError",
    "StageAbortError",
    "TransactionError",
    "ValidationError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Provides error code and structured context for debugging. All domain
    exceptions inherit from this class to enable consistent API error
    handling and logging.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (user IDs, table names).

    Example:
        >>> raise DomainError("Operation failed", context={"user_id": "123"})
        DomainError: Operation failed (user_id=123)
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
                     Values are typically strings, ints, or other primitive types.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ValidationError(DomainError):
    """Raised when input fails domain validation rules.

    Maps to HTTP 422 Unprocessable Entity. Used for malformed purge
    commands (wrong arity, unknown mode or target).

    Attributes:
        error_code: "VALIDATION_ERROR" (class constant).
        field: Field path that failed validation.
        reason: Human-readable validation failure reason.

    Example:
        >>> raise ValidationError("mode", "Invalid mode. Must be 'dry-run' or 'live'")
        ValidationError: Invalid mode. Must be 'dry-run' or 'live'
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        reason: str,
        **extra_context: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            field: Field that failed validation (e.g., "mode", "command").
            reason: Human-readable validation failure reason. Used verbatim
                    as the message so it can be shown to the caller.
            **extra_context: Additional debugging context.
        """
        self.field = field
        self.reason = reason
        context = {
            "field": field,
            **extra_context,
        }
        super().__init__(reason, context)

    def __str__(self) -> str:
        return self.reason


class ConflictError(DomainError):
    """Raised when operation conflicts with current system state.

    Maps to HTTP 409 Conflict.

    Attributes:
        error_code: "CONFLICT" (class constant).
        reason: Description of the conflict.
    """

    error_code: str = "CONFLICT"

    def __init__(
        self,
        reason: str,
        **context: Any,
    ) -> None:
        """Initialize conflict error.

        Args:
            reason: Description of conflict.
            **context: Additional debugging context.
        """
        self.reason = reason
        message = f"Conflict: {reason}"
        super().__init__(message, context)


class ExclusivityConflictError(ConflictError):
    """Raised when a purge job is submitted while another one holds the gate.

    The job does not start and performs no store mutation. There is no
    queueing: the caller has to resubmit later.

    Attributes:
        error_code: "EXCLUSIVITY_CONFLICT" (class constant).
        gate_key: Key of the shared flag that is already set.
    """

    error_code: str = "EXCLUSIVITY_CONFLICT"

    def __init__(self, gate_key: str) -> None:
        self.gate_key = gate_key
        super().__init__("a job is already running", gate_key=gate_key)

    def __str__(self) -> str:
        return "a job is already running"


class GateError(DomainError):
    """Raised when the exclusivity gate backend cannot be read or written.

    Attributes:
        error_code: "GATE_UNAVAILABLE" (class constant).
        operation: "acquire" or "release".
    """

    error_code: str = "GATE_UNAVAILABLE"

    def __init__(self, operation: str, gate_key: str, reason: str) -> None:
        self.operation = operation
        if operation == "acquire":
            message = f"could not determine if a bulk delete job is already running: {reason}"
        else:
            message = f"could not clean up job status after run: {reason}"
        super().__init__(message, {"operation": operation, "gate_key": gate_key})


class AuthorizationError(DomainError):
    """Raised when the requesting user lacks required permissions.

    Maps to HTTP 403 Forbidden.

    Example:
        >>> raise AuthorizationError("Only system administrators can run this command.")
    """

    error_code: str = "AUTHORIZATION_ERROR"


class ExternalServiceError(DomainError):
    """Raised when the account or channel service returns a non-success status.

    Aborts the stage that issued the call immediately; no retry is attempted.

    Attributes:
        error_code: "EXTERNAL_SERVICE_ERROR" (class constant).
        service: Service name ("account" or "channel").
        status_code: HTTP status returned by the service.
        target: Identifier of the user (email) or channel the call was about.
    """

    error_code: str = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        service: str,
        operation: str,
        status_code: int,
        target: str,
    ) -> None:
        self.service = service
        self.status_code = status_code
        self.target = target
        message = f"{status_code} status code during attempt to {operation} {target}"
        super().__init__(
            message,
            {"service": service, "status_code": status_code, "target": target},
        )

    def __str__(self) -> str:
        return self.message


class TransactionError(DomainError):
    """Raised when a store operation fails inside a batch or stage transaction.

    The failing transaction is rolled back; transactions committed before it
    stand.

    Attributes:
        error_code: "TRANSACTION_ERROR" (class constant).
        operation: Short description of the failed operation.
    """

    error_code: str = "TRANSACTION_ERROR"

    def __init__(self, operation: str, reason: str, **context: Any) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"error when trying to {operation}: {reason}", context)

    def __str__(self) -> str:
        return self.message


class StageAbortError(DomainError):
    """Raised by the pipeline when a stage fails; later stages do not run.

    Attributes:
        error_code: "STAGE_ABORTED" (class constant).
        stage: Name of the stage that failed.
        reason: Human-readable failure reason (the cause's message).
        completed: Users fully processed when the failure happened.
        total: Size of the target set.
    """

    error_code: str = "STAGE_ABORTED"

    def __init__(self, stage: str, reason: str, completed: int, total: int) -> None:
        self.stage = stage
        self.reason = reason
        self.completed = completed
        self.total = total
        super().__init__(
            f"stage {stage} failed: {reason}",
            {"stage": stage, "completed": completed, "total": total},
        )


class ConfigurationError(DomainError):
    """Raised when the run is misconfigured; detected before any deletion.

    Attributes:
        error_code: "CONFIGURATION_ERROR" (class constant).
        setting: Name of the offending setting.
    """

    error_code: str = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, reason: str) -> None:
        self.setting = setting
        self.reason = reason
        super().__init__(reason, {"setting": setting})
