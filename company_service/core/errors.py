"""Error taxonomy for company operations.

Every error raised by the service layer carries an ``ErrorKind``. The HTTP
layer maps kinds to status codes and never inspects message text.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure categories surfaced to callers."""
    VALIDATION = "validation"
    DUPLICATE_NAME = "duplicate_name"
    NOT_FOUND = "not_found"
    STORAGE = "storage"
    PUBLISH = "publish"
    TIMEOUT = "timeout"


class CompanyServiceError(Exception):
    """Base class for all company service errors."""
    kind: ErrorKind = ErrorKind.STORAGE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CompanyServiceError):
    """Input shape or value rejected. Caller's fault, never retried.

    Attributes:
        field: Name of the offending field (None when not field-specific)
        reason: Human-readable description of the failed rule
    """
    kind = ErrorKind.VALIDATION

    def __init__(self, field: Optional[str], reason: str):
        super().__init__(reason)
        self.field = field
        self.reason = reason


class TypeMismatchError(ValidationError):
    """Patch value has the wrong kind for its field."""

    def __init__(self, field: str, expected: str):
        super().__init__(field, f"{field} must be {expected}")
        self.expected = expected


class EmptyPatchError(ValidationError):
    """Patch request carries no mutable fields."""

    def __init__(self):
        super().__init__(None, "no fields to update")


class DuplicateNameError(CompanyServiceError):
    """Another company already holds the requested name."""
    kind = ErrorKind.DUPLICATE_NAME

    def __init__(self, name: Optional[str] = None):
        super().__init__("company name already exists")
        self.name = name


class NotFoundError(CompanyServiceError):
    """No company exists with the requested id."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, company_id: Optional[object] = None):
        super().__init__("company not found")
        self.company_id = company_id


class StorageError(CompanyServiceError):
    """Infrastructure failure in the persistence layer."""
    kind = ErrorKind.STORAGE


class PublishError(CompanyServiceError):
    """Event could not be delivered. Logged by the service, never propagated."""
    kind = ErrorKind.PUBLISH

    def __init__(self, event_type: str, reason: str):
        super().__init__(f"failed to publish {event_type}: {reason}")
        self.event_type = event_type
        self.reason = reason


class OperationTimeoutError(CompanyServiceError):
    """Operation did not reach its write within the request deadline.

    Nothing was persisted and no event was published.
    """
    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout: float):
        super().__init__("request timed out")
        self.timeout = timeout
