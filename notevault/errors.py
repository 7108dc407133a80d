"""
Application error hierarchy.

Every expected failure raised by the services is an ``ApplicationError``;
the API layer maps its category to an HTTP status and renders the message
into the standard response envelope.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


# Duplicate registrations are reported as a plain bad request, not 409.
_HTTP_STATUS = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.DUPLICATE: 400,
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.INTERNAL: 500,
}


@dataclass(eq=False)
class ApplicationError(Exception):
    """Base class for errors that are safe to show to the caller."""

    code: str
    message: str
    category: ErrorCategory = ErrorCategory.INTERNAL
    details: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def http_status_code(self) -> int:
        return _HTTP_STATUS.get(self.category, 500)


class ValidationError(ApplicationError):
    """Missing or malformed input."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            category=ErrorCategory.VALIDATION,
            details={"field": field} if field else None,
        )
        self.field = field


class DuplicateError(ApplicationError):
    """A unique value (the registration email) is already taken."""

    def __init__(self, message: str):
        super().__init__(code="DUPLICATE", message=message, category=ErrorCategory.DUPLICATE)


class AuthenticationError(ApplicationError):
    """Missing, invalid or expired token, or bad login credentials."""

    def __init__(self, message: str):
        super().__init__(code="NOT_AUTHORIZED", message=message, category=ErrorCategory.AUTHENTICATION)


class NotFoundError(ApplicationError):
    """Resource absent, or owned by someone else. The two are never distinguished."""

    def __init__(self, message: str):
        super().__init__(code="NOT_FOUND", message=message, category=ErrorCategory.NOT_FOUND)
