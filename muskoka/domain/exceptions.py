"""Domain exceptions for the muskoka service.

Defines the error taxonomy shared by the core components and the store
adapters. Presentation layer maps them to HTTP responses in exception
handlers; messages stay coarse and never carry store paths or transaction ids.
"""

from typing import Any


class MuskokaException(Exception):
    """Base exception for all muskoka application errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, task key).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error body: error code, message and details."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(MuskokaException):
    """Raised when input validation fails (malformed identifier, out-of-range limit, missing field).

    Always raised before any store access; never retried.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or parameter that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class TaskNotFoundException(MuskokaException):
    """Raised when a referenced task key does not exist (stale or forged key)."""

    def __init__(self, task_key: str) -> None:
        """Initialize with the missing task key.

        Args:
            task_key: The task key that was not found.
        """
        super().__init__(
            f"Task not found: {task_key}",
            "TASK_NOT_FOUND",
            {"key": task_key},
        )


class StoreException(MuskokaException):
    """Base exception for document store failures."""


class TransientStoreException(StoreException):
    """Timeout, contention or transaction abort. Safe to retry with backoff."""

    def __init__(self, message: str = "Document store temporarily unavailable; retry later") -> None:
        super().__init__(message, "STORE_UNAVAILABLE", {"retryable": True})


class TransactionConflictException(TransientStoreException):
    """A transaction kept conflicting with concurrent writers and was given up."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Transaction aborted after {attempts} attempts due to contention")
        self.details["attempts"] = attempts


class PermanentStoreException(StoreException):
    """Schema mismatch, decode failure or rejected request. Not retried."""

    def __init__(self, message: str = "Document store request failed") -> None:
        super().__init__(message, "STORE_ERROR", {"retryable": False})


class DocumentAlreadyExistsException(PermanentStoreException):
    """A create-only write found an existing document."""

    def __init__(self) -> None:
        super().__init__("Document already exists")


class DocumentMissingException(PermanentStoreException):
    """A write that requires an existing document found none."""

    def __init__(self) -> None:
        super().__init__("Document does not exist")
