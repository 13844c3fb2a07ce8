"""Tests for write-once local artifact storage."""

import hashlib
import io
import json

import pytest

from muskoka.infrastructure.exceptions import (
    StorageAlreadyExistsError,
    StorageChecksumMismatchError,
    StoragePermissionError,
)
from muskoka.infrastructure.external.storage.local_storage import LocalStorageService


def _sha(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


async def test_upload_writes_file_and_metadata(blob_store: LocalStorageService) -> None:
    content = b"pre-state bytes"
    result = await blob_store.upload(
        io.BytesIO(content), "v1.0/mainnet/abc/pre.ssz", _sha(content), "application/octet-stream",
        metadata={"task_key": "abc"},
    )
    assert result["checksum"] == _sha(content)
    assert result["size"] == len(content)
    target = blob_store.storage_root / "v1.0/mainnet/abc/pre.ssz"
    assert target.read_bytes() == content
    meta = json.loads(target.with_name("pre.ssz.meta.json").read_text())
    assert meta["custom"] == {"task_key": "abc"}
    assert await blob_store.exists("v1.0/mainnet/abc/pre.ssz")


async def test_reupload_of_same_content_is_idempotent(blob_store: LocalStorageService) -> None:
    content = b"block"
    for _ in range(2):
        result = await blob_store.upload(io.BytesIO(content), "a/b/c/block_0.ssz", _sha(content), "x")
    assert result["checksum"] == _sha(content)


async def test_artifacts_are_write_once(blob_store: LocalStorageService) -> None:
    await blob_store.upload(io.BytesIO(b"one"), "a/b/c/block_0.ssz", _sha(b"one"), "x")
    with pytest.raises(StorageAlreadyExistsError):
        await blob_store.upload(io.BytesIO(b"two"), "a/b/c/block_0.ssz", _sha(b"two"), "x")
    assert (blob_store.storage_root / "a/b/c/block_0.ssz").read_bytes() == b"one"


async def test_checksum_mismatch_leaves_nothing_behind(blob_store: LocalStorageService) -> None:
    with pytest.raises(StorageChecksumMismatchError):
        await blob_store.upload(io.BytesIO(b"data"), "a/b/c/pre.ssz", _sha(b"other"), "x")
    assert not await blob_store.exists("a/b/c/pre.ssz")
    assert list(blob_store.storage_root.iterdir()) == []


async def test_path_traversal_is_rejected(blob_store: LocalStorageService) -> None:
    with pytest.raises(StoragePermissionError):
        await blob_store.upload(io.BytesIO(b"x"), "../../escape.ssz", _sha(b"x"), "x")
    assert not await blob_store.exists("../outside")
