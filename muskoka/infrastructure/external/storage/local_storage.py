"""Write-once artifact storage on the local filesystem.

Layout: {storage_root}/{spec-version}/{spec-config}/{task-key}/{name}, with a
{name}.meta.json sidecar per artifact. Pre-states and blocks never change
after upload: re-uploading identical bytes is a no-op, different bytes are
rejected.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, BinaryIO

import aiofiles

from muskoka.infrastructure.exceptions import (
    StorageAlreadyExistsError,
    StorageChecksumMismatchError,
    StorageException,
    StoragePermissionError,
    StorageUploadError,
)
from muskoka.shared.utils.datetime import utc_now

META_SUFFIX = ".meta.json"


class LocalStorageService:
    """Artifact blobs under storage_root, written atomically (temp file + rename)."""

    CHUNK_SIZE = 64 * 1024

    def __init__(self, storage_root: str) -> None:
        self.storage_root = Path(storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _resolve(self, storage_ref: str) -> Path:
        """Absolute path for a ref; refs that escape storage_root are refused."""
        path = (self.storage_root / storage_ref).resolve()
        if not path.is_relative_to(self.storage_root) or path == self.storage_root:
            raise StoragePermissionError(storage_ref, "resolve")
        return path

    async def _file_digest(self, path: Path) -> str:
        digest = hashlib.sha256()
        async with aiofiles.open(path, "rb") as f:
            while chunk := await f.read(self.CHUNK_SIZE):
                digest.update(chunk)
        return digest.hexdigest()

    async def _write_atomic(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True, mode=0o750)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=path.suffix)
        os.close(fd)
        try:
            async with aiofiles.open(tmp_name, "wb") as f:
                await f.write(content)
            os.chmod(tmp_name, 0o640)
            os.replace(tmp_name, path)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

    async def upload(
        self,
        file_data: BinaryIO,
        storage_ref: str,
        expected_checksum: str,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Store one artifact and return its ref, sha256 checksum and size.

        Raises:
            StorageChecksumMismatchError: Content does not hash to expected_checksum.
            StorageAlreadyExistsError: A different artifact is stored at this ref.
            StoragePermissionError: Ref escapes the storage root.
            StorageUploadError: Filesystem failure.
        """
        target = self._resolve(storage_ref)
        try:
            content = file_data.read()
            checksum = hashlib.sha256(content).hexdigest()
            if checksum != expected_checksum:
                raise StorageChecksumMismatchError(storage_ref, expected_checksum, checksum)

            if target.exists():
                if await self._file_digest(target) != checksum:
                    raise StorageAlreadyExistsError(storage_ref)
                return {"storage_ref": storage_ref, "checksum": checksum, "size": len(content)}

            await self._write_atomic(target, content)
            uploaded_at = utc_now().isoformat()
            sidecar = {
                "storage_ref": storage_ref,
                "checksum": checksum,
                "size": len(content),
                "content_type": content_type,
                "uploaded_at": uploaded_at,
                "custom": metadata or {},
            }
            await self._write_atomic(
                target.with_name(target.name + META_SUFFIX),
                json.dumps(sidecar, indent=2).encode(),
            )
        except StorageException:
            raise
        except OSError as e:
            raise StorageUploadError(storage_ref, str(e)) from e
        return {
            "storage_ref": storage_ref,
            "checksum": checksum,
            "size": len(content),
            "uploaded_at": uploaded_at,
        }

    async def exists(self, storage_ref: str) -> bool:
        try:
            return self._resolve(storage_ref).is_file()
        except StoragePermissionError:
            return False
