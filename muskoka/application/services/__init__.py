"""Application services: index allocation, task documents, cache directives."""

from muskoka.application.services.cache_advisor import (
    CacheDirective,
    cache_directive,
    cache_directive_for,
    listing_cache_directive,
)
from muskoka.application.services.index_allocator import IndexAllocator
from muskoka.application.services.task_store import TaskStore

__all__ = [
    "CacheDirective",
    "IndexAllocator",
    "TaskStore",
    "cache_directive",
    "cache_directive_for",
    "listing_cache_directive",
]
