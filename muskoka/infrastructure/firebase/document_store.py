"""DocumentStore backed by the Firestore REST API.

Transactions map to beginTransaction / commit with reads tagged by the
transaction id. ABORTED commits are retried with exponential backoff and
jitter. Field merges are single non-transactional commits with an update
mask and an exists precondition, which Firestore applies atomically.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from muskoka.application.interfaces.store import (
    DocumentSnapshot,
    FieldPath,
    Query,
)
from muskoka.domain.exceptions import (
    PermanentStoreException,
    StoreException,
    TransactionConflictException,
)
from muskoka.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    TransactionAbortedError,
)
from muskoka.infrastructure.firebase._rest_encoding import (
    _encode_value,
    decode_fields,
    document_id,
    encode_document,
    encode_fields,
    nest_field_paths,
    quote_field_path,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OP_MAP: dict[str, str] = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
}


def build_structured_query(query: Query) -> dict[str, Any]:
    """Translate a Query into a Firestore StructuredQuery body."""
    structured: dict[str, Any] = {"from": [{"collectionId": query.collection}]}
    field_filters = []
    for flt in query.filters:
        try:
            op = _OP_MAP[flt.op]
        except KeyError:
            raise PermanentStoreException(f"Unsupported filter operator: {flt.op}") from None
        field_filters.append(
            {
                "fieldFilter": {
                    "field": {"fieldPath": quote_field_path(flt.path)},
                    "op": op,
                    "value": _encode_value(flt.value),
                }
            }
        )
    if len(field_filters) == 1:
        structured["where"] = field_filters[0]
    elif field_filters:
        structured["where"] = {"compositeFilter": {"op": "AND", "filters": field_filters}}
    if query.order_by is not None:
        structured["orderBy"] = [
            {
                "field": {"fieldPath": quote_field_path((query.order_by,))},
                "direction": "DESCENDING" if query.descending else "ASCENDING",
            }
        ]
        # Cursors are positions in the ordering: startAt(before=False) skips the value itself.
        if query.start_after is not None:
            structured["startAt"] = {"values": [_encode_value(query.start_after)], "before": False}
        if query.end_before is not None:
            structured["endAt"] = {"values": [_encode_value(query.end_before)], "before": True}
    if query.select is not None:
        paths = [quote_field_path(p) for p in query.select] or ["__name__"]
        structured["select"] = {"fields": [{"fieldPath": p} for p in paths]}
    if query.limit is not None:
        structured["limit"] = query.limit
    return structured


def _snapshot(doc: dict) -> DocumentSnapshot:
    return DocumentSnapshot(id=document_id(doc.get("name", "")), data=decode_fields(doc.get("fields")))


class FirestoreTransaction:
    """Reads inside one Firestore transaction; writes are buffered until commit."""

    def __init__(self, client: FirestoreRESTClient, transaction_id: str) -> None:
        self._client = client
        self.transaction_id = transaction_id
        self.writes: list[dict] = []

    async def get(self, path: str) -> DocumentSnapshot | None:
        doc = await self._client.get_document(path, transaction=self.transaction_id)
        return _snapshot(doc) if doc is not None else None

    async def query(self, query: Query) -> list[DocumentSnapshot]:
        docs = await self._client.run_query(
            build_structured_query(query), transaction=self.transaction_id
        )
        return [_snapshot(d) for d in docs]

    def set(self, path: str, data: dict[str, Any]) -> None:
        self.writes.append({"update": encode_document(self._client.document_name(path), data)})

    def create(self, path: str, data: dict[str, Any]) -> None:
        self.writes.append(
            {
                "update": encode_document(self._client.document_name(path), data),
                "currentDocument": {"exists": False},
            }
        )


class FirestoreDocumentStore:
    """DocumentStore over FirestoreRESTClient."""

    def __init__(
        self,
        client: FirestoreRESTClient,
        max_attempts: int = 5,
        backoff_base_seconds: float = 0.05,
        backoff_max_seconds: float = 2.0,
    ) -> None:
        self._client = client
        self.max_attempts = max_attempts
        self.backoff_base_seconds = backoff_base_seconds
        self.backoff_max_seconds = backoff_max_seconds

    async def _rollback(self, transaction_id: str) -> None:
        try:
            await self._client.rollback(transaction_id)
        except StoreException:
            logger.warning("Rollback of transaction failed; it will expire on its own")

    async def run_transaction(
        self,
        fn: Callable[[FirestoreTransaction], Awaitable[T]],
        *,
        read_only: bool = False,
    ) -> T:
        previous: str | None = None
        for attempt in range(1, self.max_attempts + 1):
            transaction_id = await self._client.begin_transaction(
                read_only=read_only, retry_transaction=previous
            )
            txn = FirestoreTransaction(self._client, transaction_id)
            try:
                result = await fn(txn)
                if read_only:
                    # A read-only transaction holds no locks; release it without committing.
                    await self._rollback(transaction_id)
                else:
                    await self._client.commit(txn.writes, transaction=transaction_id)
            except TransactionAbortedError:
                previous = None if read_only else transaction_id
                if attempt == self.max_attempts:
                    break
                delay = min(self.backoff_base_seconds * 2 ** (attempt - 1), self.backoff_max_seconds)
                logger.info("Firestore transaction aborted (attempt %d), retrying", attempt)
                await asyncio.sleep(random.uniform(0, delay))
                continue
            except Exception:
                await self._rollback(transaction_id)
                raise
            return result
        logger.warning("Firestore transaction gave up after %d attempts", self.max_attempts)
        raise TransactionConflictException(self.max_attempts)

    async def get(self, path: str) -> DocumentSnapshot | None:
        doc = await self._client.get_document(path)
        return _snapshot(doc) if doc is not None else None

    async def query(self, query: Query) -> list[DocumentSnapshot]:
        docs = await self._client.run_query(build_structured_query(query))
        return [_snapshot(d) for d in docs]

    async def merge(
        self,
        path: str,
        updates: Mapping[FieldPath, Any],
        *,
        must_exist: bool = True,
    ) -> None:
        write: dict[str, Any] = {
            "update": {
                "name": self._client.document_name(path),
                "fields": encode_fields(nest_field_paths(dict(updates))),
            },
            "updateMask": {"fieldPaths": [quote_field_path(p) for p in updates]},
        }
        if must_exist:
            write["currentDocument"] = {"exists": True}
        await self._client.commit([write])

    async def aclose(self) -> None:
        await self._client.aclose()
