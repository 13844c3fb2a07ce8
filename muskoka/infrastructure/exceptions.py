"""Artifact storage exceptions.

Raised by blob store implementations. They extend MuskokaException so the
central handlers map them to 500 with a generic body; the artifact ref and
reason are logged, never returned.
"""

from muskoka.domain.exceptions import MuskokaException


class StorageException(MuskokaException):
    """Base exception for artifact storage."""


class StorageUploadError(StorageException):
    """Filesystem or backend failure while writing an artifact."""

    def __init__(self, storage_ref: str, reason: str) -> None:
        super().__init__(
            f"Could not store artifact {storage_ref}",
            "STORAGE_UPLOAD_ERROR",
            {"storage_ref": storage_ref, "reason": reason},
        )


class StorageChecksumMismatchError(StorageException):
    """Artifact content does not hash to the checksum computed at upload."""

    def __init__(self, storage_ref: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Checksum mismatch for artifact {storage_ref}",
            "STORAGE_CHECKSUM_ERROR",
            {"storage_ref": storage_ref, "expected": expected, "actual": actual},
        )


class StorageAlreadyExistsError(StorageException):
    """A different artifact is already stored at this ref (artifacts are write-once)."""

    def __init__(self, storage_ref: str) -> None:
        super().__init__(
            f"Artifact already stored with different content: {storage_ref}",
            "STORAGE_EXISTS_ERROR",
            {"storage_ref": storage_ref},
        )


class StoragePermissionError(StorageException):
    """Artifact ref resolves outside the storage root."""

    def __init__(self, storage_ref: str, operation: str) -> None:
        super().__init__(
            f"Artifact ref not allowed for {operation}: {storage_ref}",
            "STORAGE_PERMISSION_ERROR",
            {"storage_ref": storage_ref, "operation": operation},
        )
