"""Use cases: listing, result ingestion and the task service."""

from muskoka.application.use_cases.listing import ListingQuery, filter_query
from muskoka.application.use_cases.results import ResultMerger, merge_updates
from muskoka.application.use_cases.tasks import TaskService, artifact_ref

__all__ = [
    "ListingQuery",
    "ResultMerger",
    "TaskService",
    "artifact_ref",
    "filter_query",
    "merge_updates",
]
