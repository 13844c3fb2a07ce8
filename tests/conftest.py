"""Pytest configuration and fixtures for muskoka.

Environment is set before muskoka is imported, so the cached settings select
the in-memory document store and disable Redis and rate limiting. HTTP tests
use muskoka.main:app with a TaskService injected into app.state (the ASGI
transport does not run the lifespan).
"""

import os
import tempfile

os.environ["DATABASE_BACKEND"] = "memory"
os.environ["REDIS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("STORAGE_ROOT", tempfile.mkdtemp(prefix="muskoka-test-"))

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from muskoka.application.dtos.task import TaskReadyEvent  # noqa: E402
from muskoka.application.use_cases.tasks import TaskService  # noqa: E402
from muskoka.infrastructure.external.storage.local_storage import (  # noqa: E402
    LocalStorageService,
)
from muskoka.infrastructure.memory import InMemoryDocumentStore  # noqa: E402
from muskoka.main import app  # noqa: E402


class RecordingPublisher:
    """Event publisher double that keeps published events in a list."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.events: list[TaskReadyEvent] = []

    async def publish_task_ready(self, event: TaskReadyEvent) -> bool:
        if not self.available:
            return False
        self.events.append(event)
        return True

    def is_available(self) -> bool:
        return self.available


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    """Fresh in-memory store; generous retry budget for concurrency tests."""
    return InMemoryDocumentStore(
        max_attempts=200,
        backoff_base_seconds=0.0005,
        backoff_max_seconds=0.005,
    )


@pytest.fixture
def blob_store(tmp_path) -> LocalStorageService:
    return LocalStorageService(storage_root=str(tmp_path / "artifacts"))


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def task_service(memory_store, blob_store, publisher) -> TaskService:
    """TaskService over the in-memory store, local artifact storage and a recording publisher."""
    return TaskService(
        memory_store,
        blob_store,
        publisher,
        timeout_seconds=5.0,
        max_blocks=16,
        default_limit=10,
        max_limit=20,
    )


@pytest.fixture
async def client(task_service: TaskService) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI) using task_service."""
    app.state.task_service = task_service
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.state.task_service = None
        app.dependency_overrides.clear()
