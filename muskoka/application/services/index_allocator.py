"""Task index allocation on a counter document.

Uniqueness comes from the enclosing transaction: two concurrent allocations
read the same counter, and the store lets only one of them commit; the other
is retried and reads the advanced value. This component owns no locks.
"""

from __future__ import annotations

import logging

from muskoka.application.interfaces.store import DocumentSnapshot, DocumentStore, Transaction
from muskoka.core.constants import (
    COLLECTION_TRANSITIONS_META,
    DOC_NEXT_INDEX,
    FIELD_NEXT_INDEX,
)
from muskoka.domain.exceptions import PermanentStoreException

logger = logging.getLogger(__name__)

COUNTER_PATH = f"{COLLECTION_TRANSITIONS_META}/{DOC_NEXT_INDEX}"


def _counter_value(snapshot: DocumentSnapshot | None) -> int:
    if snapshot is None:
        return 0
    value = snapshot.to_dict().get(FIELD_NEXT_INDEX, 0)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        logger.error("Malformed index counter at %s: %r", COUNTER_PATH, value)
        raise PermanentStoreException("Task index counter is malformed")
    return value


class IndexAllocator:
    """Hands out unique, strictly increasing task indices."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def allocate_next(self, txn: Transaction) -> int:
        """Return the next index and advance the counter, inside the caller's transaction.

        Must run in the same transaction as the task header write, so the
        index and the task become visible together.
        """
        current = _counter_value(await txn.get(COUNTER_PATH))
        txn.set(COUNTER_PATH, {FIELD_NEXT_INDEX: current + 1})
        return current

    async def read_count(self, txn: Transaction | None = None) -> int:
        """Return the number of indices handed out so far.

        Pass the listing transaction to read it on the same snapshot as a page.
        """
        if txn is not None:
            return _counter_value(await txn.get(COUNTER_PATH))
        return _counter_value(await self._store.get(COUNTER_PATH))
