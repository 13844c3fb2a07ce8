"""Tests for domain exceptions (error_code, message, details)."""

import pytest

from muskoka.domain.exceptions import (
    DocumentAlreadyExistsException,
    DocumentMissingException,
    MuskokaException,
    PermanentStoreException,
    StoreException,
    TaskNotFoundException,
    TransactionConflictException,
    TransientStoreException,
    ValidationException,
)
from muskoka.infrastructure.exceptions import (
    StorageAlreadyExistsError,
    StorageChecksumMismatchError,
    StorageException,
)


def test_muskoka_exception_default_error_code() -> None:
    """Base MuskokaException uses class name as error_code when not provided."""
    exc = MuskokaException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "MuskokaException"
    assert exc.details == {}
    assert str(exc) == "Something failed"


def test_muskoka_exception_to_dict() -> None:
    """to_dict is the JSON error body."""
    exc = MuskokaException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.to_dict() == {"error": "CUSTOM", "message": "Oops", "details": {"key": "value"}}


def test_validation_exception() -> None:
    """ValidationException sets VALIDATION_ERROR and optional field in details."""
    exc = ValidationException("invalid limit", field="limit")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "limit"}
    assert ValidationException("bad").details == {}


def test_task_not_found_exception() -> None:
    exc = TaskNotFoundException("abc")
    assert exc.error_code == "TASK_NOT_FOUND"
    assert exc.details == {"key": "abc"}
    assert "abc" in exc.message


def test_transient_store_exceptions_are_retryable() -> None:
    """Contention is reported as a transient store failure with attempt count."""
    exc = TransactionConflictException(5)
    assert isinstance(exc, TransientStoreException)
    assert exc.error_code == "STORE_UNAVAILABLE"
    assert exc.details == {"retryable": True, "attempts": 5}
    assert "5 attempts" in exc.message


@pytest.mark.parametrize(
    "exc_class", [DocumentAlreadyExistsException, DocumentMissingException]
)
def test_precondition_failures_are_permanent(exc_class) -> None:
    exc = exc_class()
    assert isinstance(exc, PermanentStoreException)
    assert isinstance(exc, StoreException)
    assert exc.error_code == "STORE_ERROR"
    assert exc.details == {"retryable": False}


def test_storage_exceptions_share_base() -> None:
    assert issubclass(StorageAlreadyExistsError, StorageException)
    assert issubclass(StorageChecksumMismatchError, StorageException)
    assert issubclass(StorageException, MuskokaException)
