"""Tests for the upload flow and lookups in TaskService."""

import asyncio

import pytest

from muskoka.application.dtos.listing import ListingFilter
from muskoka.application.use_cases.tasks import TaskService, artifact_ref
from muskoka.domain.exceptions import (
    TaskNotFoundException,
    TransientStoreException,
    ValidationException,
)
from muskoka.infrastructure.exceptions import StorageAlreadyExistsError


async def test_create_task_stores_artifacts_and_publishes(task_service: TaskService, blob_store, publisher) -> None:
    """Artifacts land under the task key; workers get a task-ready event."""
    result = await task_service.create_task("v1.0", "mainnet", b"pre", [b"b0", b"b1"])

    task = result.task
    assert result.published is True
    assert task.index == 0
    assert task.blocks == 2
    root = blob_store.storage_root
    assert (root / artifact_ref("v1.0", "mainnet", task.key, "pre.ssz")).read_bytes() == b"pre"
    assert (root / artifact_ref("v1.0", "mainnet", task.key, "block_0.ssz")).read_bytes() == b"b0"
    assert (root / artifact_ref("v1.0", "mainnet", task.key, "block_1.ssz")).read_bytes() == b"b1"

    [event] = publisher.events
    assert (event.key, event.index, event.blocks) == (task.key, 0, 2)
    assert (event.spec_version, event.spec_config) == ("v1.0", "mainnet")

    fetched = await task_service.get_task(task.key)
    assert fetched.key == task.key


async def test_create_task_reports_unpublished_notification(memory_store, blob_store, publisher) -> None:
    """An unavailable publisher does not fail the upload."""
    publisher.available = False
    service = TaskService(memory_store, blob_store, publisher)
    result = await service.create_task("v1.0", "minimal", b"pre", [b"b0"])
    assert result.published is False
    page = await service.list_tasks(ListingFilter())
    assert [t.key for t in page.tasks] == [result.task.key]


async def test_create_task_without_publisher(memory_store, blob_store) -> None:
    service = TaskService(memory_store, blob_store)
    result = await service.create_task("v1.0", "minimal", b"pre", [b"b0"])
    assert result.published is False


@pytest.mark.parametrize(
    ("pre", "blocks"),
    [
        (b"", [b"b0"]),
        (b"pre", []),
        (b"pre", [b"b"] * 17),
        (b"pre", [b"b0", b""]),
    ],
)
async def test_create_task_rejects_bad_file_sets(task_service: TaskService, blob_store, publisher, pre, blocks) -> None:
    with pytest.raises(ValidationException):
        await task_service.create_task("v1.0", "mainnet", pre, blocks)
    assert list(blob_store.storage_root.iterdir()) == []
    assert publisher.events == []


async def test_create_task_rejects_bad_header(task_service: TaskService, blob_store) -> None:
    with pytest.raises(ValidationException):
        await task_service.create_task("v1.0", "main net", b"pre", [b"b0"])
    assert list(blob_store.storage_root.iterdir()) == []


async def test_failed_artifact_upload_creates_no_task(task_service: TaskService, monkeypatch) -> None:
    """Storage errors propagate before the task document is written."""

    async def _fail(*args, **kwargs):
        raise StorageAlreadyExistsError("v1.0/mainnet/x/pre.ssz")

    monkeypatch.setattr(task_service.blob_store, "upload", _fail)
    with pytest.raises(StorageAlreadyExistsError):
        await task_service.create_task("v1.0", "mainnet", b"pre", [b"b0"])
    assert await task_service.allocator.read_count() == 0


async def test_get_task_missing(task_service: TaskService) -> None:
    with pytest.raises(TaskNotFoundException):
        await task_service.get_task("doesnotexist")


class _StalledPublisher:
    def __init__(self) -> None:
        self.calls = 0

    async def publish_task_ready(self, event) -> bool:
        self.calls += 1
        await asyncio.sleep(60)
        return True

    def is_available(self) -> bool:
        return True


async def test_stalled_publisher_does_not_block_upload(memory_store, blob_store) -> None:
    """The task is committed and reported unpublished once the deadline passes."""
    publisher = _StalledPublisher()
    service = TaskService(memory_store, blob_store, publisher, timeout_seconds=0.1)

    result = await asyncio.wait_for(service.create_task("v1.0", "mainnet", b"pre", [b"b0"]), timeout=3)

    assert result.published is False
    assert result.task.index == 0
    assert publisher.calls == 1
    assert (await service.get_task(result.task.key)).index == 0


async def test_stalled_artifact_upload_is_retryable_and_creates_no_task(memory_store, blob_store, monkeypatch) -> None:
    service = TaskService(memory_store, blob_store, timeout_seconds=0.1)

    async def _hang(*args, **kwargs):
        await asyncio.sleep(60)

    monkeypatch.setattr(blob_store, "upload", _hang)
    with pytest.raises(TransientStoreException):
        await asyncio.wait_for(service.create_task("v1.0", "mainnet", b"pre", [b"b0"]), timeout=3)
    assert await service.allocator.read_count() == 0
