"""Task service: the object the HTTP layer talks to.

Built once at startup from the injected document store, blob store and event
publisher, and held on app.state. Wires the core components together and adds
the upload flow (artifacts, task document, notification).
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import logging
from collections.abc import Callable, Sequence

from muskoka.application.dtos.listing import ListingFilter, ListingPage
from muskoka.application.dtos.task import (
    ResultSubmission,
    Task,
    TaskCreationResult,
    TaskHeader,
    TaskReadyEvent,
)
from muskoka.application.interfaces.services import IBlobStore, IEventPublisher
from muskoka.application.interfaces.store import DocumentStore
from muskoka.application.services.index_allocator import IndexAllocator
from muskoka.application.services.task_store import TaskStore
from muskoka.application.use_cases.listing import ListingQuery
from muskoka.application.use_cases.results import ResultMerger
from muskoka.core.constants import ARTIFACT_BLOCK_TEMPLATE, ARTIFACT_PRE_STATE
from muskoka.domain.exceptions import TaskNotFoundException, ValidationException
from muskoka.shared.telemetry.tracing import add_span_attributes, traced
from muskoka.shared.utils.deadline import with_deadline
from muskoka.shared.utils.generators import generate_cuid

logger = logging.getLogger(__name__)

ARTIFACT_CONTENT_TYPE = "application/octet-stream"


def artifact_ref(spec_version: str, spec_config: str, task_key: str, name: str) -> str:
    """Blob path of one task artifact."""
    return f"{spec_version}/{spec_config}/{task_key}/{name}"


class TaskService:
    """Upload, lookup, listing and result ingestion over one document store."""

    def __init__(
        self,
        store: DocumentStore,
        blob_store: IBlobStore,
        publisher: IEventPublisher | None = None,
        *,
        timeout_seconds: float = 10.0,
        max_blocks: int = 16,
        default_limit: int = 10,
        max_limit: int = 20,
        client_allowed: Callable[[str], bool] | None = None,
    ) -> None:
        self.store = store
        self.blob_store = blob_store
        self.publisher = publisher
        self.timeout_seconds = timeout_seconds
        self.max_blocks = max_blocks
        self.allocator = IndexAllocator(store)
        self.task_store = TaskStore(store, self.allocator, timeout_seconds)
        self.result_merger = ResultMerger(
            self.task_store, store, timeout_seconds, client_allowed=client_allowed
        )
        self.listing = ListingQuery(
            store,
            self.allocator,
            timeout_seconds,
            default_limit=default_limit,
            max_limit=max_limit,
        )

    def _validate_upload(self, header: TaskHeader, pre_state: bytes, blocks: Sequence[bytes]) -> None:
        if not pre_state:
            raise ValidationException("expected exactly one pre-state file", field="pre")
        if not blocks:
            raise ValidationException("expected at least one block", field="blocks")
        if len(blocks) > self.max_blocks:
            raise ValidationException(
                f"too many blocks, maximum is {self.max_blocks}", field="blocks"
            )
        if any(not block for block in blocks):
            raise ValidationException("block files may not be empty", field="blocks")
        self.task_store.validate_header(header)

    async def _store_artifact(self, ref: str, content: bytes, task_key: str) -> None:
        upload = self.blob_store.upload(
            io.BytesIO(content),
            ref,
            hashlib.sha256(content).hexdigest(),
            ARTIFACT_CONTENT_TYPE,
            metadata={"task_key": task_key},
        )
        await with_deadline(upload, self.timeout_seconds, "store artifact", service="Artifact storage")

    async def _publish(self, task: Task) -> bool:
        """Notify workers; a missing, failing or stalled transport yields False."""
        if self.publisher is None:
            return False
        event = TaskReadyEvent(
            key=task.key,
            index=task.index,
            blocks=task.blocks,
            spec_version=task.spec_version,
            spec_config=task.spec_config,
        )
        try:
            return await asyncio.wait_for(
                self.publisher.publish_task_ready(event), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning("Task-ready publish for %s timed out after %ss", task.key, self.timeout_seconds)
            return False

    @traced("task_service.create_task")
    async def create_task(
        self,
        spec_version: str,
        spec_config: str,
        pre_state: bytes,
        blocks: Sequence[bytes],
    ) -> TaskCreationResult:
        """Store the artifacts, create the task and notify workers.

        Artifacts are written before the task document, so any worker that
        sees the task can fetch its inputs. A failed notification is logged
        and reported in the result; the task stays listed either way.

        Raises:
            ValidationException: Bad header or file set (nothing is written).
            StorageException: Artifact upload failed (no task is created).
            TransientStoreException: Store or artifact storage timeout, or contention.
        """
        header = TaskHeader(spec_version=spec_version, spec_config=spec_config, blocks=len(blocks))
        self._validate_upload(header, pre_state, blocks)

        key = generate_cuid()
        add_span_attributes(task_key=key, block_count=len(blocks))
        await self._store_artifact(
            artifact_ref(spec_version, spec_config, key, ARTIFACT_PRE_STATE), pre_state, key
        )
        for i, block in enumerate(blocks):
            name = ARTIFACT_BLOCK_TEMPLATE.format(i)
            await self._store_artifact(artifact_ref(spec_version, spec_config, key, name), block, key)

        task = await self.task_store.create(header, key=key)

        published = await self._publish(task)
        if not published:
            logger.warning("Task %s created but task-ready notification was not published", task.key)
        return TaskCreationResult(task=task, published=published)

    async def get_task(self, key: str) -> Task:
        """Return the task or raise TaskNotFoundException."""
        task = await self.task_store.get(key)
        if task is None:
            raise TaskNotFoundException(key)
        return task

    async def submit_result(self, task_key: str, submission: ResultSubmission) -> str:
        """Add a worker result; returns the new result key."""
        return await self.result_merger.submit(task_key, submission)

    async def list_tasks(
        self,
        listing_filter: ListingFilter,
        after: int | None = None,
        before: int | None = None,
        limit: int | None = None,
    ) -> ListingPage:
        """One listing page with has-next / has-previous flags."""
        return await self.listing.list_page(listing_filter, after=after, before=before, limit=limit)
