"""In-process document store with optimistic, serializable transactions.

Used with DATABASE_BACKEND=memory and by the test suite. Semantics follow the
Firestore adapter: transactions record the version of every document they
read (and of every collection they query) and commit only if none of them
changed in the meantime, otherwise the transaction function is run again
after a backoff. Commits and merges are applied synchronously, so no lock is
needed on a single event loop.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from muskoka.application.interfaces.store import (
    DocumentSnapshot,
    FieldFilter,
    FieldPath,
    Query,
)
from muskoka.domain.exceptions import (
    DocumentAlreadyExistsException,
    DocumentMissingException,
    PermanentStoreException,
    TransactionConflictException,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class _Conflict(Exception):
    """A value read by the transaction changed before commit."""


def _split_path(path: str) -> tuple[str, str]:
    collection, sep, doc_id = path.partition("/")
    if not sep or not collection or not doc_id or "/" in doc_id:
        raise PermanentStoreException(f"Invalid document path: {path}")
    return collection, doc_id


def _get_field(data: Mapping[str, Any], path: FieldPath) -> Any:
    value: Any = data
    for segment in path:
        if not isinstance(value, Mapping) or segment not in value:
            return _MISSING
        value = value[segment]
    return value


def _set_field(data: dict[str, Any], path: FieldPath, value: Any) -> None:
    target = data
    for segment in path[:-1]:
        child = target.get(segment)
        if not isinstance(child, dict):
            child = {}
            target[segment] = child
        target = child
    target[path[-1]] = copy.deepcopy(value)


def _same_value(a: Any, b: Any) -> bool:
    # True == 1 in Python but not in the store's type system.
    return type(a) is type(b) and a == b


def _matches(data: Mapping[str, Any], flt: FieldFilter) -> bool:
    value = _get_field(data, flt.path)
    if value is _MISSING:
        return False
    if flt.op == "==":
        return _same_value(value, flt.value)
    if flt.op == "!=":
        return not _same_value(value, flt.value)
    try:
        if flt.op == "<":
            return value < flt.value
        if flt.op == "<=":
            return value <= flt.value
        if flt.op == ">":
            return value > flt.value
        if flt.op == ">=":
            return value >= flt.value
    except TypeError:
        return False
    raise PermanentStoreException(f"Unsupported filter operator: {flt.op}")


def _project(data: dict[str, Any], select: tuple[FieldPath, ...] | None) -> dict[str, Any]:
    if select is None:
        return copy.deepcopy(data)
    projected: dict[str, Any] = {}
    for path in select:
        value = _get_field(data, path)
        if value is not _MISSING:
            _set_field(projected, path, value)
    return projected


class InMemoryTransaction:
    """Transaction bound to one attempt of InMemoryDocumentStore.run_transaction."""

    def __init__(self, store: InMemoryDocumentStore, read_only: bool) -> None:
        self._store = store
        self._read_only = read_only
        self._doc_reads: dict[str, int] = {}
        self._collection_reads: dict[str, int] = {}
        self._writes: list[tuple[str, str, dict[str, Any]]] = []

    async def get(self, path: str) -> DocumentSnapshot | None:
        await asyncio.sleep(0)
        version, snapshot = self._store._read(path)
        self._doc_reads.setdefault(path, version)
        if self._doc_reads[path] != version:
            raise _Conflict
        return snapshot

    async def query(self, query: Query) -> list[DocumentSnapshot]:
        await asyncio.sleep(0)
        version = self._store._collection_version(query.collection)
        self._collection_reads.setdefault(query.collection, version)
        if self._collection_reads[query.collection] != version:
            raise _Conflict
        return self._store._run_query(query)

    def _write(self, kind: str, path: str, data: dict[str, Any]) -> None:
        if self._read_only:
            raise PermanentStoreException("Write in a read-only transaction")
        _split_path(path)
        self._writes.append((kind, path, copy.deepcopy(data)))

    def set(self, path: str, data: dict[str, Any]) -> None:
        self._write("set", path, data)

    def create(self, path: str, data: dict[str, Any]) -> None:
        self._write("create", path, data)


class InMemoryDocumentStore:
    """DocumentStore kept in a dict; one instance per process (or per test)."""

    def __init__(
        self,
        max_attempts: int = 5,
        backoff_base_seconds: float = 0.005,
        backoff_max_seconds: float = 0.25,
    ) -> None:
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_max_seconds = backoff_max_seconds
        self._docs: dict[str, tuple[int, dict[str, Any]]] = {}
        self._collections: dict[str, int] = {}
        self._clock = 0

    def _read(self, path: str) -> tuple[int, DocumentSnapshot | None]:
        _, doc_id = _split_path(path)
        entry = self._docs.get(path)
        if entry is None:
            return 0, None
        version, data = entry
        return version, DocumentSnapshot(id=doc_id, data=copy.deepcopy(data))

    def _collection_version(self, collection: str) -> int:
        return self._collections.get(collection, 0)

    def _put(self, path: str, data: dict[str, Any]) -> None:
        collection, _ = _split_path(path)
        self._clock += 1
        self._docs[path] = (self._clock, data)
        self._collections[collection] = self._clock

    def _run_query(self, query: Query) -> list[DocumentSnapshot]:
        prefix = f"{query.collection}/"
        rows: list[tuple[Any, str, dict[str, Any]]] = []
        for path, (_, data) in self._docs.items():
            if not path.startswith(prefix) or "/" in path[len(prefix):]:
                continue
            if not all(_matches(data, flt) for flt in query.filters):
                continue
            order_value = None
            if query.order_by is not None:
                order_value = _get_field(data, (query.order_by,))
                if order_value is _MISSING:
                    continue
            rows.append((order_value, path[len(prefix):], data))

        if query.order_by is not None:
            rows.sort(key=lambda row: (row[0], row[1]), reverse=query.descending)
            if query.start_after is not None:
                rows = [
                    r for r in rows
                    if (r[0] < query.start_after if query.descending else r[0] > query.start_after)
                ]
            if query.end_before is not None:
                rows = [
                    r for r in rows
                    if (r[0] > query.end_before if query.descending else r[0] < query.end_before)
                ]
        else:
            rows.sort(key=lambda row: row[1])
        if query.limit is not None:
            rows = rows[: query.limit]
        return [DocumentSnapshot(id=doc_id, data=_project(data, query.select)) for _, doc_id, data in rows]

    def _commit(self, txn: InMemoryTransaction) -> None:
        for path, version in txn._doc_reads.items():
            if self._read(path)[0] != version:
                raise _Conflict
        for collection, version in txn._collection_reads.items():
            if self._collection_version(collection) != version:
                raise _Conflict
        for kind, path, _ in txn._writes:
            if kind == "create" and path in self._docs:
                raise DocumentAlreadyExistsException()
        for _, path, data in txn._writes:
            self._put(path, data)

    async def run_transaction(
        self,
        fn: Callable[[InMemoryTransaction], Awaitable[T]],
        *,
        read_only: bool = False,
    ) -> T:
        for attempt in range(1, self.max_attempts + 1):
            txn = InMemoryTransaction(self, read_only)
            try:
                result = await fn(txn)
                self._commit(txn)
            except _Conflict:
                if attempt == self.max_attempts:
                    break
                delay = min(self.backoff_base_seconds * 2 ** (attempt - 1), self.backoff_max_seconds)
                logger.debug("Transaction conflict (attempt %d), retrying", attempt)
                await asyncio.sleep(random.uniform(0, delay))
                continue
            return result
        logger.warning("Transaction gave up after %d attempts", self.max_attempts)
        raise TransactionConflictException(self.max_attempts)

    async def get(self, path: str) -> DocumentSnapshot | None:
        await asyncio.sleep(0)
        return self._read(path)[1]

    async def query(self, query: Query) -> list[DocumentSnapshot]:
        await asyncio.sleep(0)
        return self._run_query(query)

    async def merge(
        self,
        path: str,
        updates: Mapping[FieldPath, Any],
        *,
        must_exist: bool = True,
    ) -> None:
        await asyncio.sleep(0)
        entry = self._docs.get(path)
        if entry is None and must_exist:
            raise DocumentMissingException()
        data = copy.deepcopy(entry[1]) if entry is not None else {}
        for field_path, value in updates.items():
            if not field_path:
                raise PermanentStoreException("Empty field path")
            _set_field(data, field_path, value)
        self._put(path, data)

    async def aclose(self) -> None:
        return None
