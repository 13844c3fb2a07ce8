"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic. Used by main.py; no business
logic here, only wiring of infrastructure (document store, artifact storage,
task stream) into the TaskService held on app.state.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from muskoka.application.interfaces.store import DocumentStore
from muskoka.application.use_cases.tasks import TaskService
from muskoka.core.config import Settings, get_settings
from muskoka.infrastructure.external.storage import StorageFactory

logger = logging.getLogger(__name__)


def create_document_store(settings: Settings) -> DocumentStore:
    """Document store for the configured backend.

    Raises:
        RuntimeError: Firestore selected but the client could not be initialized.
    """
    if settings.database_backend == "memory":
        from muskoka.infrastructure.memory import InMemoryDocumentStore

        logger.warning("Using in-memory document store; data is lost on restart")
        return InMemoryDocumentStore(max_attempts=settings.store_max_attempts)

    from muskoka.infrastructure.firebase import (
        FirestoreDocumentStore,
        get_firestore_client,
        init_firebase,
    )

    if not init_firebase(settings):
        raise RuntimeError("Firestore backend selected but the client could not be initialized")
    client = get_firestore_client()
    if client is None:
        raise RuntimeError("Firestore client missing after initialization")
    return FirestoreDocumentStore(client, max_attempts=settings.store_max_attempts)


def build_task_service(settings: Settings, store: DocumentStore, publisher=None) -> TaskService:
    """Wire the TaskService from settings and already-created adapters."""
    allowed = settings.allowed_client_names
    return TaskService(
        store,
        StorageFactory.create_storage_service(settings),
        publisher,
        timeout_seconds=settings.store_timeout_seconds,
        max_blocks=settings.max_blocks,
        default_limit=settings.listing_default_limit,
        max_limit=settings.listing_max_limit,
        client_allowed=(lambda name: name in allowed) if allowed else None,
    )


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: document store, task stream publisher (if enabled),
    TaskService. Shutdown order: publisher disconnect, store close.
    """
    settings = get_settings()

    # ---- Startup ----
    store = create_document_store(settings)

    publisher = None
    if settings.redis_enabled:
        from muskoka.infrastructure.messaging import TaskEventPublisher

        publisher = TaskEventPublisher(settings=settings)
        await publisher.connect()
    app.state.task_publisher = publisher

    app.state.task_service = build_task_service(settings, store, publisher)
    logger.info(
        "%s %s started (store=%s, redis=%s)",
        settings.app_name,
        settings.app_version,
        settings.database_backend,
        settings.redis_enabled,
    )

    yield

    # ---- Shutdown ----
    if getattr(app.state, "task_publisher", None) is not None:
        await app.state.task_publisher.disconnect()
        app.state.task_publisher = None

    app.state.task_service = None
    if settings.database_backend == "firestore":
        from muskoka.infrastructure.firebase import close_firebase

        await close_firebase()
    else:
        await store.aclose()
    logger.info("Document store closed")
