"""Document store port (DIP).

The core needs four primitives from its store: serializable multi-document
transactions, strongly consistent point reads, indexed equality/range queries
with descending order and exclusive cursors, and field-level merge writes
that touch only the named (possibly nested) fields. Implementations:
FirestoreDocumentStore (REST) and InMemoryDocumentStore.

Paths are "collection/document". Field paths are tuples of segments, so map
keys that contain dots or hyphens never need escaping at this level.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

T = TypeVar("T")

FieldPath = tuple[str, ...]


@dataclass(frozen=True)
class DocumentSnapshot:
    """Snapshot of a document (id + data)."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@dataclass(frozen=True)
class FieldFilter:
    """One equality or range predicate; all filters of a query are ANDed."""

    path: FieldPath
    op: str
    value: Any


@dataclass(frozen=True)
class Query:
    """Structured query on one collection.

    start_after / end_before are exclusive cursor values on the order_by
    field. With descending order, start_after=i keeps values < i and
    end_before=i keeps values > i. select=None returns whole documents;
    select=() returns document ids only.
    """

    collection: str
    filters: tuple[FieldFilter, ...] = ()
    order_by: str | None = None
    descending: bool = False
    start_after: Any = None
    end_before: Any = None
    limit: int | None = None
    select: tuple[FieldPath, ...] | None = None


class Transaction(Protocol):
    """Reads and buffered writes that commit atomically, or not at all."""

    async def get(self, path: str) -> DocumentSnapshot | None:
        """Read a document inside the transaction; None if missing."""

    async def query(self, query: Query) -> list[DocumentSnapshot]:
        """Run a query inside the transaction."""

    def set(self, path: str, data: dict[str, Any]) -> None:
        """Buffer a full overwrite of the document."""

    def create(self, path: str, data: dict[str, Any]) -> None:
        """Buffer a create; the commit fails if the document already exists."""


class DocumentStore(Protocol):
    """Protocol for the task document store."""

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[T]],
        *,
        read_only: bool = False,
    ) -> T:
        """Run fn in a serializable transaction and commit its writes.

        The store may call fn more than once when the commit conflicts with
        a concurrent writer; fn must not have side effects outside the
        transaction. Raises TransactionConflictException when retries are
        exhausted.
        """

    async def get(self, path: str) -> DocumentSnapshot | None:
        """Strongly consistent point read; None if missing."""

    async def query(self, query: Query) -> list[DocumentSnapshot]:
        """Run a query outside any transaction."""

    async def merge(
        self,
        path: str,
        updates: Mapping[FieldPath, Any],
        *,
        must_exist: bool = True,
    ) -> None:
        """Atomically write only the given field paths, leaving siblings untouched.

        Raises DocumentMissingException when must_exist is set and the
        document does not exist.
        """

    async def aclose(self) -> None:
        """Release connections held by the store."""
