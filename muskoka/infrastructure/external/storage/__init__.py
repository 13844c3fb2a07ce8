"""Artifact storage (pre-states and blocks).

Factory creates the backend from muskoka.core.config; implementations are
loaded lazily inside StorageFactory.create_storage_service().
"""

from muskoka.infrastructure.external.storage.factory import StorageFactory

__all__ = ["StorageFactory"]
