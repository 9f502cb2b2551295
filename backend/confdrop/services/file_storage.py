"""Byte storage for uploaded files on the local filesystem.

Uploads are written in two phases: bytes are first staged under
``<upload_dir>/.staging`` and only moved next to the other blobs once the
metadata has been validated. A failed request therefore never leaves a blob
in the upload directory.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os

from confdrop.exceptions import StorageError

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".staging"


@dataclass(frozen=True)
class StagedUpload:
    stored_filename: str
    path: Path
    size: int


class FileStorageService:
    """Handles blob read/write/delete under a single upload directory."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)
        self.staging_path = self.base_path / STAGING_DIR_NAME

    def initialize(self) -> None:
        """Create the upload and staging directories. Raises on failure."""
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.staging_path.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_name(original_name: str) -> str:
        """Opaque on-disk name: epoch millis, a uuid4 and the original extension."""
        ext = Path(original_name).suffix.lower()
        return f"{int(time.time() * 1000)}-{uuid.uuid4()}{ext}"

    def path_for(self, stored_filename: str) -> Path:
        # Stored names are server generated, but never let one escape base_path
        name = Path(stored_filename).name
        return self.base_path / name

    async def stage(self, file_bytes: bytes, original_name: str) -> StagedUpload:
        """Write bytes to the staging area. Returns a handle for commit/discard."""
        stored_filename = self.generate_name(original_name)
        staged_path = self.staging_path / stored_filename
        try:
            async with aiofiles.open(staged_path, "wb") as f:
                await f.write(file_bytes)
        except OSError as e:
            logger.error(f"Failed to stage upload {stored_filename}: {e}")
            await self.discard(StagedUpload(stored_filename, staged_path, len(file_bytes)))
            raise StorageError("Could not store the uploaded file.") from e
        return StagedUpload(stored_filename, staged_path, len(file_bytes))

    async def commit(self, staged: StagedUpload) -> Path:
        """Move a staged blob into the upload directory."""
        final_path = self.path_for(staged.stored_filename)
        try:
            await aiofiles.os.replace(staged.path, final_path)
        except OSError as e:
            logger.error(f"Failed to commit upload {staged.stored_filename}: {e}")
            await self.discard(staged)
            raise StorageError("Could not store the uploaded file.") from e
        return final_path

    async def discard(self, staged: StagedUpload) -> None:
        """Best-effort removal of a staged blob. Failures are logged only."""
        try:
            if await aiofiles.os.path.exists(staged.path):
                await aiofiles.os.remove(staged.path)
        except OSError as e:
            logger.error(f"Failed to discard staged upload {staged.stored_filename}: {e}")

    async def exists(self, stored_filename: str) -> bool:
        return await aiofiles.os.path.isfile(self.path_for(stored_filename))

    async def read(self, stored_filename: str) -> bytes:
        """Read blob bytes by stored name."""
        async with aiofiles.open(self.path_for(stored_filename), "rb") as f:
            return await f.read()

    async def delete(self, stored_filename: str) -> bool:
        """Delete a blob. A missing blob is not an error; returns whether one was removed."""
        path = self.path_for(stored_filename)
        try:
            if await aiofiles.os.path.exists(path):
                await aiofiles.os.remove(path)
                return True
        except OSError as e:
            logger.error(f"Failed to delete blob {stored_filename}: {e}")
        return False
