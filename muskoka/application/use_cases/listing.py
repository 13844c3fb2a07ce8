"""Task listings: filtered, latest-first pages with index cursors.

Ordering is by index, descending. The index is a total order without ties,
so a cursor is just the boundary index: after=i continues into older tasks
(index < i), before=i pages back toward newer tasks (index > i).

The page and the task counter are read in one read-only transaction, so the
reported total is never smaller than what the page shows. The has-next /
has-previous probes run afterwards as separate limit-1, ids-only queries; a
page boundary moving in between is accepted staleness.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from muskoka.application.dtos.listing import (
    ClientFilter,
    ListingFilter,
    ListingPage,
    PageDirection,
)
from muskoka.application.dtos.task import Task
from muskoka.application.interfaces.store import (
    DocumentSnapshot,
    DocumentStore,
    FieldFilter,
    Query,
    Transaction,
)
from muskoka.application.services.index_allocator import IndexAllocator
from muskoka.application.services.task_store import task_from_document
from muskoka.core.constants import (
    COLLECTION_TRANSITIONS,
    FIELD_HAS_FAIL,
    FIELD_INDEX,
    FIELD_SPEC_CONFIG,
    FIELD_SPEC_VERSION,
    FIELD_WORKERS,
    FIELD_WORKERS_VERSIONED,
    LISTING_FIELDS,
)
from muskoka.domain.exceptions import ValidationException
from muskoka.domain.identifiers import is_valid_client_name, require_key, require_version
from muskoka.shared.telemetry.tracing import traced
from muskoka.shared.utils.deadline import with_deadline

logger = logging.getLogger(__name__)


def filter_query(listing_filter: ListingFilter) -> Query:
    """Unbounded, unordered query matching every task the filter selects."""
    filters: list[FieldFilter] = []
    if listing_filter.has_fail is not None:
        filters.append(FieldFilter((FIELD_HAS_FAIL,), "==", listing_filter.has_fail))
    if listing_filter.spec_version is not None:
        filters.append(FieldFilter((FIELD_SPEC_VERSION,), "==", listing_filter.spec_version))
    if listing_filter.spec_config is not None:
        filters.append(FieldFilter((FIELD_SPEC_CONFIG,), "==", listing_filter.spec_config))
    for client in listing_filter.clients:
        if client.version is None:
            filters.append(FieldFilter((FIELD_WORKERS, client.name), "==", True))
        else:
            filters.append(
                FieldFilter((FIELD_WORKERS_VERSIONED, client.name), "==", client.version)
            )
    return Query(
        collection=COLLECTION_TRANSITIONS,
        filters=tuple(filters),
        order_by=FIELD_INDEX,
        descending=True,
    )


def _validate_cursor(value: int | None, field: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationException(f"invalid {field}-index", field=field)


class ListingQuery:
    """Paginated, filtered views over tasks."""

    def __init__(
        self,
        store: DocumentStore,
        allocator: IndexAllocator,
        timeout_seconds: float,
        default_limit: int = 10,
        max_limit: int = 20,
    ) -> None:
        self._store = store
        self._allocator = allocator
        self._timeout = timeout_seconds
        self.default_limit = default_limit
        self.max_limit = max_limit

    def resolve_limit(self, limit: int | None) -> int:
        """Default when absent; a limit above the maximum is rejected, not clamped."""
        if limit is None:
            return self.default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationException("invalid limit", field="limit")
        if limit > self.max_limit:
            raise ValidationException("limit is too much", field="limit")
        return limit

    @staticmethod
    def validate_filter(listing_filter: ListingFilter) -> None:
        """Raise ValidationException for malformed filter values."""
        if listing_filter.spec_version is not None:
            require_version(listing_filter.spec_version, "spec-version")
        if listing_filter.spec_config is not None:
            require_key(listing_filter.spec_config, "spec-config")
        for client in listing_filter.clients:
            if not is_valid_client_name(client.name):
                raise ValidationException("client name is invalid", field="client")
            if client.version is not None:
                require_version(client.version, "client version")

    @traced("listing.query")
    async def query(
        self,
        listing_filter: ListingFilter,
        after: int | None = None,
        before: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[Task], int]:
        """Return one page (latest first) and the total task count, from one snapshot.

        Raises:
            ValidationException: Bad limit, cursor or filter value.
            TransientStoreException: Timeout or contention.
        """
        page_size = self.resolve_limit(limit)
        _validate_cursor(after, "after")
        _validate_cursor(before, "before")
        self.validate_filter(listing_filter)

        base = replace(
            filter_query(listing_filter),
            limit=page_size,
            select=tuple((name,) for name in LISTING_FIELDS),
        )
        # Paging back only: read upward from the boundary so the page is the adjacent one.
        ascending = before is not None and after is None
        if ascending:
            page_query = replace(base, descending=False, start_after=before)
        else:
            page_query = replace(base, start_after=after, end_before=before)

        async def _read(txn: Transaction) -> tuple[int, list[DocumentSnapshot]]:
            total = await self._allocator.read_count(txn)
            if total == 0:
                return 0, []
            return total, await txn.query(page_query)

        total, snapshots = await with_deadline(
            self._store.run_transaction(_read, read_only=True),
            self._timeout,
            "listing query",
        )
        tasks = [task_from_document(s.id, s.to_dict()) for s in snapshots]
        if ascending:
            tasks.reverse()
        return tasks, total

    @traced("listing.has_adjacent_page")
    async def has_adjacent_page(
        self,
        listing_filter: ListingFilter,
        boundary: int,
        direction: PageDirection,
    ) -> bool:
        """Return True if any filtered task lies beyond boundary in the given direction.

        NEXT looks for index < boundary, PREV for index > boundary. Projects
        no fields and reads at most one document.
        """
        probe = replace(
            filter_query(listing_filter),
            descending=direction is PageDirection.NEXT,
            start_after=boundary,
            limit=1,
            select=(),
        )
        found = await with_deadline(
            self._store.query(probe), self._timeout, "adjacent page probe"
        )
        return bool(found)

    async def list_page(
        self,
        listing_filter: ListingFilter,
        after: int | None = None,
        before: int | None = None,
        limit: int | None = None,
    ) -> ListingPage:
        """Page plus has-next / has-previous flags."""
        tasks, total = await self.query(listing_filter, after=after, before=before, limit=limit)
        if tasks:
            has_next = await self.has_adjacent_page(
                listing_filter, tasks[-1].index, PageDirection.NEXT
            )
            has_prev = await self.has_adjacent_page(
                listing_filter, tasks[0].index, PageDirection.PREV
            )
        else:
            # Nothing between the cursors; look past each given boundary instead.
            has_next = before is not None and await self.has_adjacent_page(
                listing_filter, before + 1, PageDirection.NEXT
            )
            has_prev = after is not None and await self.has_adjacent_page(
                listing_filter, after - 1, PageDirection.PREV
            )
        logger.debug(
            "Listing page: %d tasks, total=%d, next=%s, prev=%s",
            len(tasks),
            total,
            has_next,
            has_prev,
        )
        return ListingPage(
            tasks=tasks,
            total_count=total,
            has_next_page=has_next,
            has_prev_page=has_prev,
        )


__all__ = ["ClientFilter", "ListingQuery", "filter_query"]
