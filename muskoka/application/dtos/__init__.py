"""Application DTOs: frozen dataclasses passed between use cases and adapters."""

from muskoka.application.dtos.listing import (
    ClientFilter,
    ListingFilter,
    ListingPage,
    PageDirection,
)
from muskoka.application.dtos.task import (
    ResultEntry,
    ResultFiles,
    ResultSubmission,
    Task,
    TaskCreationResult,
    TaskHeader,
    TaskReadyEvent,
)

__all__ = [
    "ClientFilter",
    "ListingFilter",
    "ListingPage",
    "PageDirection",
    "ResultEntry",
    "ResultFiles",
    "ResultSubmission",
    "Task",
    "TaskCreationResult",
    "TaskHeader",
    "TaskReadyEvent",
]
