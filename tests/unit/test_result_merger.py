"""ResultMerger tests: additive merge, denormalized fields, validation."""

import asyncio
from dataclasses import replace
from datetime import UTC, datetime

import pytest

from muskoka.application.dtos.task import (
    ResultEntry,
    ResultFiles,
    ResultSubmission,
    Task,
    TaskHeader,
)
from muskoka.application.services.index_allocator import IndexAllocator
from muskoka.application.services.task_store import TaskStore
from muskoka.application.use_cases.results import ResultMerger, merge_updates
from muskoka.domain.exceptions import TaskNotFoundException, ValidationException

ROOT = "0x" + "ab" * 32


def _submission(
    success: bool = True,
    client_name: str = "zrnt",
    client_version: str = "v0.1.0",
    post_hash: str = ROOT,
) -> ResultSubmission:
    return ResultSubmission(
        success=success,
        post_hash=post_hash,
        client_name=client_name,
        client_version=client_version,
        files=ResultFiles(post_state="gs://bucket/post.ssz"),
    )


def _assert_consistent(task: Task) -> None:
    """has-fail and the worker maps always agree with the result ledger."""
    assert task.has_fail == any(not r.success for r in task.results.values())
    assert task.workers == frozenset(r.client_name for r in task.results.values())
    assert set(task.workers_versioned or {}) == set(task.workers or ())
    for name, version in (task.workers_versioned or {}).items():
        assert version in {r.client_version for r in task.results.values() if r.client_name == name}


@pytest.fixture
def task_store(memory_store) -> TaskStore:
    return TaskStore(memory_store, IndexAllocator(memory_store), timeout_seconds=5.0)


@pytest.fixture
def merger(task_store: TaskStore, memory_store) -> ResultMerger:
    return ResultMerger(task_store, memory_store, timeout_seconds=5.0)


@pytest.fixture
async def task(task_store: TaskStore) -> Task:
    return await task_store.create(TaskHeader(spec_version="v1.0", spec_config="mainnet", blocks=2))


async def test_submit_adds_entry_and_worker_fields(merger, task_store, task) -> None:
    result_key = await merger.submit(task.key, _submission())
    stored = await task_store.get(task.key)
    assert stored is not None
    assert list(stored.results) == [result_key]
    entry = stored.results[result_key]
    assert entry.success is True
    assert entry.post_hash == ROOT
    assert entry.files.post_state == "gs://bucket/post.ssz"
    assert stored.workers == frozenset({"zrnt"})
    assert stored.workers_versioned == {"zrnt": "v0.1.0"}
    assert stored.has_fail is False
    _assert_consistent(stored)


async def test_failure_sets_has_fail_and_success_never_clears_it(merger, task_store, task) -> None:
    await merger.submit(task.key, _submission(success=False))
    await merger.submit(task.key, _submission(success=True, client_name="lighthouse"))
    stored = await task_store.get(task.key)
    assert stored is not None
    assert stored.has_fail is True
    _assert_consistent(stored)


async def test_concurrent_submissions_are_not_lost(merger, task_store, task) -> None:
    """K concurrent submissions leave exactly K entries."""
    k = 20
    submissions = [
        _submission(success=i % 3 != 0, client_name=f"client{i % 4}", client_version=f"v{i}")
        for i in range(k)
    ]
    keys = await asyncio.gather(*(merger.submit(task.key, s) for s in submissions))
    assert len(set(keys)) == k
    stored = await task_store.get(task.key)
    assert stored is not None
    assert set(stored.results) == set(keys)
    _assert_consistent(stored)


async def test_identical_submissions_are_kept_separately(merger, task_store, task) -> None:
    """No content-based deduplication: a retried submission is a new entry."""
    first = await merger.submit(task.key, _submission())
    second = await merger.submit(task.key, _submission())
    assert first != second
    stored = await task_store.get(task.key)
    assert stored is not None and len(stored.results) == 2


async def test_unknown_task_is_not_found(merger) -> None:
    with pytest.raises(TaskNotFoundException):
        await merger.submit("missingtask", _submission())


@pytest.mark.parametrize(
    "submission",
    [
        _submission(post_hash="0x1234"),
        _submission(client_name="_private"),
        _submission(client_version=""),
    ],
)
async def test_invalid_submission_rejected(merger, task_store, task, submission) -> None:
    with pytest.raises(ValidationException):
        await merger.submit(task.key, submission)
    stored = await task_store.get(task.key)
    assert stored is not None and stored.results == {}


async def test_client_allow_list(task_store, memory_store, task) -> None:
    merger = ResultMerger(
        task_store, memory_store, timeout_seconds=5.0, client_allowed=lambda name: name == "zrnt"
    )
    await merger.submit(task.key, _submission(client_name="zrnt"))
    with pytest.raises(ValidationException):
        await merger.submit(task.key, _submission(client_name="other"))


def test_merge_updates_only_touches_named_fields() -> None:
    """has-fail is written only for failures; sibling results are never part of the write."""
    entry = ResultEntry(
        success=True,
        created=datetime(2025, 1, 1, tzinfo=UTC),
        client_name="zrnt",
        client_version="v1",
        post_hash=ROOT,
    )
    updates = merge_updates("rk", entry)
    assert set(updates) == {("results", "rk"), ("workers", "zrnt"), ("workers-versioned", "zrnt")}
    failed = merge_updates("rk", replace(entry, success=False))
    assert failed[("has-fail",)] is True
