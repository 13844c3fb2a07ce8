"""Tests for POST /api/v1/upload (multipart)."""

from httpx import AsyncClient

from muskoka.application.use_cases.tasks import artifact_ref


def _files(blocks: int = 2) -> list:
    files = [("pre", ("pre.ssz", b"pre-state", "application/octet-stream"))]
    files += [
        ("blocks", (f"block_{i}.ssz", f"block-{i}".encode(), "application/octet-stream"))
        for i in range(blocks)
    ]
    return files


async def test_upload_with_headers_creates_task(client: AsyncClient, blob_store, publisher) -> None:
    response = await client.post(
        "/api/v1/upload",
        files=_files(),
        headers={"spec-version": "v1.0", "spec-config": "mainnet"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["index"] == 0
    assert body["published"] is True
    assert [e.key for e in publisher.events] == [body["key"]]
    stored = blob_store.storage_root / artifact_ref("v1.0", "mainnet", body["key"], "block_1.ssz")
    assert stored.read_bytes() == b"block-1"

    task = (await client.get(f"/api/v1/task/{body['key']}")).json()
    assert task["blocks"] == 2


async def test_upload_with_form_fields(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/upload",
        files=_files(1),
        data={"spec-version": "v1.0", "spec-config": "minimal"},
    )
    assert response.status_code == 201
    second = await client.post(
        "/api/v1/upload",
        files=_files(1),
        data={"spec-version": "v1.0", "spec-config": "minimal"},
    )
    assert second.json()["index"] == 1


async def test_upload_without_pre_state_returns_400(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/upload",
        files=_files()[1:],
        data={"spec-version": "v1.0", "spec-config": "mainnet"},
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"field": "pre"}


async def test_upload_without_spec_version_returns_400(client: AsyncClient) -> None:
    response = await client.post("/api/v1/upload", files=_files(), data={"spec-config": "mainnet"})
    assert response.status_code == 400
    assert response.json()["details"] == {"field": "spec-version"}


async def test_upload_too_many_blocks_returns_400(client: AsyncClient, task_service) -> None:
    response = await client.post(
        "/api/v1/upload",
        files=_files(17),
        data={"spec-version": "v1.0", "spec-config": "mainnet"},
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"field": "blocks"}
    assert await task_service.allocator.read_count() == 0


async def test_upload_with_invalid_config_returns_400(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/upload",
        files=_files(),
        data={"spec-version": "v1.0", "spec-config": "main/net"},
    )
    assert response.status_code == 400
