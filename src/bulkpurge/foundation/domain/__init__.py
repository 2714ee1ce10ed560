"""Bulkpurge Foundation Domain: exceptions and user value objects."""

from bulkpurge.foundation.domain.exceptions import (
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    DomainError,
    ExclusivityConflictError,
    ExternalServiceError,
    GateError,
    StageAbortError,
    TransactionError,
    ValidationError,
)
from bulkpurge.foundation.domain.user_value_objects import (
    SYSTEM_ADMIN_ROLE,
    TargetUser,
    email_matches,
    filter_users_by_emails,
)

__all__ = [
    "SYSTEM_ADMIN_ROLE",
    "AuthorizationError",
    "ConfigurationError",
    "ConflictError",
    "DomainError",
    "ExclusivityConflictError",
    "ExternalServiceError",
    "GateError",
    "StageAbortError",
    "TargetUser",
    "TransactionError",
    "ValidationError",
    "email_matches",
    "filter_users_by_emails",
]
