"""Result ingestion: additive merge of worker results into a task.

Workers for different clients report on the same task concurrently. Each
submission is written as one field-level merge that adds a fresh result key
and the worker summary fields; sibling results are never read or rewritten,
so concurrent submissions cannot overwrite each other.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from muskoka.application.dtos.task import ResultEntry, ResultSubmission
from muskoka.application.interfaces.store import DocumentStore, FieldPath
from muskoka.application.services.task_store import (
    TaskStore,
    result_entry_to_document,
    task_path,
)
from muskoka.core.constants import (
    FIELD_HAS_FAIL,
    FIELD_RESULTS,
    FIELD_WORKERS,
    FIELD_WORKERS_VERSIONED,
)
from muskoka.domain.exceptions import (
    DocumentMissingException,
    TaskNotFoundException,
    ValidationException,
)
from muskoka.domain.identifiers import (
    is_valid_client_name,
    is_valid_root,
    is_valid_version,
    require_task_key,
)
from muskoka.shared.telemetry.tracing import traced
from muskoka.shared.utils.datetime import utc_now
from muskoka.shared.utils.deadline import with_deadline
from muskoka.shared.utils.generators import generate_result_key

logger = logging.getLogger(__name__)


def merge_updates(result_key: str, entry: ResultEntry) -> dict[FieldPath, Any]:
    """Field paths written for one result.

    has-fail is only ever set to true, which is "has-fail OR NOT success"
    without reading the current value.
    """
    updates: dict[FieldPath, Any] = {
        (FIELD_RESULTS, result_key): result_entry_to_document(entry),
        (FIELD_WORKERS, entry.client_name): True,
        (FIELD_WORKERS_VERSIONED, entry.client_name): entry.client_version,
    }
    if not entry.success:
        updates[(FIELD_HAS_FAIL,)] = True
    return updates


class ResultMerger:
    """Appends worker results to tasks."""

    def __init__(
        self,
        task_store: TaskStore,
        store: DocumentStore,
        timeout_seconds: float,
        client_allowed: Callable[[str], bool] | None = None,
    ) -> None:
        """Initialize.

        Args:
            task_store: Used to confirm the task exists before merging.
            store: Document store performing the merge write.
            timeout_seconds: Deadline for each store call.
            client_allowed: Optional allow-list check on client names.
        """
        self._task_store = task_store
        self._store = store
        self._timeout = timeout_seconds
        self._client_allowed = client_allowed

    def validate(self, task_key: str, submission: ResultSubmission) -> None:
        """Raise ValidationException for malformed input. No store access."""
        if not is_valid_root(submission.post_hash):
            raise ValidationException("post hash has invalid format", field="post-hash")
        if not is_valid_version(submission.client_version):
            raise ValidationException("client version is invalid", field="client-version")
        if not is_valid_client_name(submission.client_name) or (
            self._client_allowed is not None and not self._client_allowed(submission.client_name)
        ):
            raise ValidationException("client name is invalid", field="client-name")
        require_task_key(task_key)

    @traced("result_merger.submit")
    async def submit(self, task_key: str, submission: ResultSubmission) -> str:
        """Add a result to a task and return its new result key.

        Identical submissions are stored as distinct entries; there is no
        content-based deduplication.

        Raises:
            ValidationException: Malformed submission (before any store access).
            TaskNotFoundException: No task with this key.
            TransientStoreException: Timeout or contention; retry with backoff.
        """
        self.validate(task_key, submission)
        task = await self._task_store.get(task_key)
        if task is None:
            raise TaskNotFoundException(task_key)

        result_key = generate_result_key()
        entry = ResultEntry(
            success=submission.success,
            created=utc_now(),
            client_name=submission.client_name,
            client_version=submission.client_version,
            post_hash=submission.post_hash,
            files=submission.files,
        )
        try:
            await with_deadline(
                self._store.merge(task_path(task_key), merge_updates(result_key, entry)),
                self._timeout,
                "merge result",
            )
        except DocumentMissingException:
            raise TaskNotFoundException(task_key) from None
        logger.info(
            "Stored result %s for task %s from %s %s (success=%s)",
            result_key,
            task_key,
            entry.client_name,
            entry.client_version,
            entry.success,
        )
        return result_key
