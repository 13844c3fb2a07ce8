"""Domain layer: identifier rules and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

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

__all__ = [
    "DocumentAlreadyExistsException",
    "DocumentMissingException",
    "MuskokaException",
    "PermanentStoreException",
    "StoreException",
    "TaskNotFoundException",
    "TransactionConflictException",
    "TransientStoreException",
    "ValidationException",
]
