"""Task documents: creation with an allocated index, point reads, and the document codec.

A task document holds the immutable header, the result ledger and the
denormalized filter fields (has-fail, workers, workers-versioned) kept in
step with the ledger by ResultMerger.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from muskoka.application.dtos.task import ResultEntry, ResultFiles, Task, TaskHeader
from muskoka.application.interfaces.store import DocumentStore, Transaction
from muskoka.application.services.index_allocator import IndexAllocator
from muskoka.core.constants import (
    COLLECTION_TRANSITIONS,
    FIELD_BLOCKS,
    FIELD_CREATED,
    FIELD_HAS_FAIL,
    FIELD_INDEX,
    FIELD_RESULTS,
    FIELD_SPEC_CONFIG,
    FIELD_SPEC_VERSION,
    FIELD_WORKERS,
    FIELD_WORKERS_VERSIONED,
)
from muskoka.domain.exceptions import PermanentStoreException, ValidationException
from muskoka.domain.identifiers import require_key, require_task_key, require_version
from muskoka.shared.telemetry.tracing import add_span_attributes, traced
from muskoka.shared.utils.datetime import ensure_utc, utc_now
from muskoka.shared.utils.deadline import with_deadline
from muskoka.shared.utils.generators import generate_cuid

logger = logging.getLogger(__name__)


def task_path(key: str) -> str:
    """Store path of the task document."""
    return f"{COLLECTION_TRANSITIONS}/{key}"


def result_entry_to_document(entry: ResultEntry) -> dict[str, Any]:
    return {
        "success": entry.success,
        "created": entry.created,
        "client-name": entry.client_name,
        "client-version": entry.client_version,
        "post-hash": entry.post_hash,
        "files": {
            "post-state": entry.files.post_state,
            "err-log": entry.files.err_log,
            "out-log": entry.files.out_log,
        },
    }


def _result_entry_from_document(data: dict[str, Any]) -> ResultEntry:
    files = data.get("files") or {}
    return ResultEntry(
        success=bool(data["success"]),
        created=_as_datetime(data["created"]),
        client_name=str(data["client-name"]),
        client_version=str(data["client-version"]),
        post_hash=str(data["post-hash"]),
        files=ResultFiles(
            post_state=str(files.get("post-state", "")),
            err_log=str(files.get("err-log", "")),
            out_log=str(files.get("out-log", "")),
        ),
    )


def _as_datetime(value: Any) -> datetime:
    if not isinstance(value, datetime):
        raise TypeError(f"expected timestamp, got {type(value).__name__}")
    return ensure_utc(value)  # type: ignore[return-value]


def new_task_document(header: TaskHeader, index: int, created: datetime) -> dict[str, Any]:
    """Document for a freshly created task: empty ledger, no failures, no workers."""
    return {
        FIELD_INDEX: index,
        FIELD_BLOCKS: header.blocks,
        FIELD_SPEC_VERSION: header.spec_version,
        FIELD_SPEC_CONFIG: header.spec_config,
        FIELD_CREATED: created,
        FIELD_RESULTS: {},
        FIELD_HAS_FAIL: False,
        FIELD_WORKERS: {},
        FIELD_WORKERS_VERSIONED: {},
    }


def task_from_document(key: str, data: dict[str, Any]) -> Task:
    """Decode a (possibly projected) task document.

    Raises:
        PermanentStoreException: The document does not have the task schema.
    """
    try:
        results = {
            result_key: _result_entry_from_document(entry)
            for result_key, entry in (data.get(FIELD_RESULTS) or {}).items()
        }
        has_fail = data.get(FIELD_HAS_FAIL)
        if has_fail is None:
            has_fail = any(not entry.success for entry in results.values())
        workers = data.get(FIELD_WORKERS)
        workers_versioned = data.get(FIELD_WORKERS_VERSIONED)
        return Task(
            key=key,
            index=int(data[FIELD_INDEX]),
            blocks=int(data[FIELD_BLOCKS]),
            spec_version=str(data[FIELD_SPEC_VERSION]),
            spec_config=str(data[FIELD_SPEC_CONFIG]),
            created=_as_datetime(data[FIELD_CREATED]),
            results=results,
            has_fail=bool(has_fail),
            workers=frozenset(workers) if workers is not None else None,
            workers_versioned=dict(workers_versioned) if workers_versioned is not None else None,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.error("Could not parse task document %s: %s", key, e)
        raise PermanentStoreException("Could not parse stored task") from e


class TaskStore:
    """Creates and reads task documents."""

    def __init__(
        self,
        store: DocumentStore,
        allocator: IndexAllocator,
        timeout_seconds: float,
    ) -> None:
        self._store = store
        self._allocator = allocator
        self._timeout = timeout_seconds

    @staticmethod
    def validate_header(header: TaskHeader) -> None:
        """Raise ValidationException unless the header fields are well formed."""
        require_version(header.spec_version, "spec-version")
        require_key(header.spec_config, "spec-config")
        if isinstance(header.blocks, bool) or not isinstance(header.blocks, int) or header.blocks < 1:
            raise ValidationException("block count must be a positive integer", field="blocks")

    @traced("task_store.create")
    async def create(self, header: TaskHeader, key: str | None = None) -> Task:
        """Allocate an index and persist the header in one transaction.

        key is generated when not given; callers pass one when artifacts must
        be stored under it before the task becomes visible.

        Header and index become visible together or not at all. An aborted
        attempt may leave a gap in the index sequence, never a duplicate.

        Raises:
            ValidationException: Malformed header (before any store access).
            TransientStoreException: Timeout or persistent contention.
            PermanentStoreException: The store rejected the write.
        """
        self.validate_header(header)
        if key is None:
            key = generate_cuid()
        else:
            require_task_key(key)
        created = utc_now()

        async def _create(txn: Transaction) -> int:
            index = await self._allocator.allocate_next(txn)
            txn.create(task_path(key), new_task_document(header, index, created))
            return index

        index = await with_deadline(
            self._store.run_transaction(_create), self._timeout, "create task"
        )
        add_span_attributes(task_index=index)
        logger.info(
            "Created task %s index=%d spec=%s/%s blocks=%d",
            key,
            index,
            header.spec_version,
            header.spec_config,
            header.blocks,
        )
        return Task(
            key=key,
            index=index,
            blocks=header.blocks,
            spec_version=header.spec_version,
            spec_config=header.spec_config,
            created=created,
            workers=frozenset(),
            workers_versioned={},
        )

    @traced("task_store.get")
    async def get(self, key: str) -> Task | None:
        """Strongly consistent read of a task; None if it does not exist."""
        require_task_key(key)
        snapshot = await with_deadline(
            self._store.get(task_path(key)), self._timeout, "get task"
        )
        if snapshot is None:
            return None
        return task_from_document(snapshot.id, snapshot.to_dict())
