"""In-process document store (DATABASE_BACKEND=memory, tests)."""

from muskoka.infrastructure.memory.document_store import InMemoryDocumentStore

__all__ = ["InMemoryDocumentStore"]
