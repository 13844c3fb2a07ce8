"""HTTP cache directives derived from the age of returned data.

Historical tasks change rarely (only when a late result arrives), so repeated
scrolls through old data can be served from caches. Pure functions; no state.

| condition, for both oldest and newest | directive        |
|---------------------------------------|------------------|
| age > 7 days                          | cache 1 day      |
| age > 3 hours                         | cache 1 hour     |
| age < 30 seconds                      | no-cache         |
| otherwise                             | cache 30 seconds |
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from enum import Enum

from muskoka.application.dtos.listing import ListingPage

DAY_AGE = timedelta(days=7)
HOUR_AGE = timedelta(hours=3)
FRESH_AGE = timedelta(seconds=30)


class CacheDirective(str, Enum):
    """Cache-Control header values."""

    ONE_DAY = "max-age=86400"
    ONE_HOUR = "max-age=3600"
    HALF_MINUTE = "max-age=30"
    NO_CACHE = "no-cache"


def cache_directive(oldest: datetime, newest: datetime, now: datetime) -> CacheDirective:
    """Return the first tier whose age condition holds for both boundary timestamps."""
    oldest_age = now - oldest
    newest_age = now - newest
    if oldest_age > DAY_AGE and newest_age > DAY_AGE:
        return CacheDirective.ONE_DAY
    if oldest_age > HOUR_AGE and newest_age > HOUR_AGE:
        return CacheDirective.ONE_HOUR
    if oldest_age < FRESH_AGE and newest_age < FRESH_AGE:
        return CacheDirective.NO_CACHE
    return CacheDirective.HALF_MINUTE


def cache_directive_for(timestamps: Iterable[datetime], now: datetime) -> CacheDirective:
    """Directive for a result set; an empty set is never cached."""
    values = list(timestamps)
    if not values:
        return CacheDirective.NO_CACHE
    return cache_directive(min(values), max(values), now)


def listing_cache_directive(
    page: ListingPage, now: datetime, head_window: int
) -> CacheDirective:
    """Directive for a listing page.

    A page within head_window indices of the newest task shifts as soon as a
    task is created, so it is never cached regardless of age.
    """
    if not page.tasks:
        return CacheDirective.NO_CACHE
    newest_index = max(task.index for task in page.tasks)
    if newest_index + head_window >= page.total_count:
        return CacheDirective.NO_CACHE
    return cache_directive_for((task.created for task in page.tasks), now)
