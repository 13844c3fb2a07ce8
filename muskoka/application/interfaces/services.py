"""Service interfaces (ports) for artifact storage and task notifications.

Implementations: LocalStorageService (blob store) and TaskEventPublisher
(Redis stream). Tests substitute in-memory doubles.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, BinaryIO, Protocol

if TYPE_CHECKING:
    from muskoka.application.dtos.task import TaskReadyEvent


class IBlobStore(Protocol):
    """Write-once artifact storage addressed by a relative path."""

    async def upload(
        self,
        file_data: BinaryIO,
        storage_ref: str,
        expected_checksum: str,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Store the artifact. Idempotent for identical content; different content is rejected."""
        ...

    async def exists(self, storage_ref: str) -> bool:
        """Return True if an artifact is stored at storage_ref."""
        ...


class IEventPublisher(Protocol):
    """At-least-once task-ready notifications keyed by (spec version, spec config)."""

    async def publish_task_ready(self, event: TaskReadyEvent) -> bool:
        """Publish; return False if the transport is unavailable or rejected the message."""
        ...

    def is_available(self) -> bool:
        """Return True if the transport is connected."""
        ...
