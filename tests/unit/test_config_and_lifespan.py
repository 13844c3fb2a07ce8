"""Tests for settings validation and startup wiring."""

import pytest
from pydantic import ValidationError

from muskoka.application.dtos.task import ResultSubmission
from muskoka.core.config import Settings
from muskoka.core.lifespan import build_task_service, create_document_store
from muskoka.domain.exceptions import ValidationException
from muskoka.infrastructure.memory import InMemoryDocumentStore

POST_HASH = "0x" + "ef" * 32


def test_firestore_backend_requires_credentials_or_emulator(monkeypatch) -> None:
    for name in ("FIREBASE_SERVICE_ACCOUNT_KEY", "FIREBASE_SERVICE_ACCOUNT_PATH", "FIRESTORE_EMULATOR_HOST"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ValidationError):
        Settings(database_backend="firestore", _env_file=None)


def test_emulator_requires_project(monkeypatch) -> None:
    monkeypatch.delenv("GCP_PROJECT", raising=False)
    with pytest.raises(ValidationError):
        Settings(database_backend="firestore", firestore_emulator_host="localhost:8080", _env_file=None)
    settings = Settings(
        database_backend="firestore",
        firestore_emulator_host="localhost:8080",
        gcp_project="demo",
        _env_file=None,
    )
    assert settings.gcp_project == "demo"


@pytest.mark.parametrize(
    "overrides",
    [
        {"database_backend": "sql"},
        {"storage_backend": "s3"},
        {"listing_default_limit": 30},
        {"listing_default_limit": 0},
        {"store_max_attempts": 0},
    ],
)
def test_invalid_settings_are_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        Settings(database_backend="memory", _env_file=None, **overrides)


def test_allowed_client_names_parsing() -> None:
    settings = Settings(database_backend="memory", allowed_clients=" zrnt, lighthouse ,,", _env_file=None)
    assert settings.allowed_client_names == frozenset({"zrnt", "lighthouse"})
    assert Settings(database_backend="memory", _env_file=None).allowed_client_names == frozenset()


def test_memory_backend_store() -> None:
    store = create_document_store(Settings(database_backend="memory", store_max_attempts=7, _env_file=None))
    assert isinstance(store, InMemoryDocumentStore)
    assert store.max_attempts == 7


async def test_task_service_applies_client_allow_list(tmp_path, memory_store) -> None:
    settings = Settings(
        database_backend="memory",
        storage_root=str(tmp_path),
        allowed_clients="zrnt",
        max_blocks=4,
        _env_file=None,
    )
    service = build_task_service(settings, memory_store)
    assert service.max_blocks == 4
    created = await service.create_task("v1.0", "mainnet", b"pre", [b"b0"])

    await service.submit_result(created.task.key, ResultSubmission(True, POST_HASH, "zrnt", "v1"))
    with pytest.raises(ValidationException):
        await service.submit_result(
            created.task.key, ResultSubmission(True, POST_HASH, "lighthouse", "v1")
        )


def test_firestore_store_requires_initialized_client(monkeypatch) -> None:
    """A client that vanished after init fails startup instead of building a broken store."""
    import muskoka.infrastructure.firebase as firebase

    monkeypatch.setattr(firebase, "init_firebase", lambda settings: True)
    monkeypatch.setattr(firebase, "get_firestore_client", lambda: None)
    settings = Settings(
        database_backend="firestore",
        firestore_emulator_host="localhost:8080",
        gcp_project="demo",
        _env_file=None,
    )
    with pytest.raises(RuntimeError):
        create_document_store(settings)
