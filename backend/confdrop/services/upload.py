"""Admin upload: extension and size checks, staged write, metadata commit."""
import logging
from pathlib import Path
from typing import Optional

from confdrop.exceptions import ConfdropError, UploadRejected
from confdrop.schemas.file import FileMetadata, FileRecord
from confdrop.services.file_storage import FileStorageService
from confdrop.services.registry import FileRegistry, format_file_size

logger = logging.getLogger(__name__)


def extension_of(filename: str) -> str:
    return Path(filename).suffix.lower()


class UploadService:
    def __init__(
        self,
        registry: FileRegistry,
        storage: FileStorageService,
        allowed_extensions: set[str],
        max_bytes: int,
    ):
        self.registry = registry
        self.storage = storage
        self.allowed_extensions = {e.lower() for e in allowed_extensions}
        self.max_bytes = max_bytes

    def check_extension(self, filename: Optional[str]) -> None:
        """Reject before anything is written."""
        if not filename:
            raise UploadRejected("No file uploaded.")
        if extension_of(filename) not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise UploadRejected(f"File type not allowed. Accepted types: {allowed}")

    def check_size(self, size: int) -> None:
        if size > self.max_bytes:
            raise UploadRejected(f"File too large. Maximum {format_file_size(self.max_bytes)}.")

    async def handle(self, filename: Optional[str], contents: bytes, meta: FileMetadata) -> FileRecord:
        """Stage the bytes, validate metadata, then commit blob and record.

        Any failure after staging removes the bytes again before the
        error propagates.
        """
        self.check_extension(filename)
        self.check_size(len(contents))

        staged = await self.storage.stage(contents, filename)
        try:
            record = self.registry.build_record(meta, filename, staged.stored_filename, staged.size)
        except ConfdropError:
            await self.storage.discard(staged)
            raise

        await self.storage.commit(staged)
        try:
            await self.registry.add(record)
        except ConfdropError:
            logger.error(f"Registry write failed for {staged.stored_filename}, removing blob")
            await self.storage.delete(staged.stored_filename)
            raise

        logger.info(f"Uploaded {filename} as {record.id} ({record.size})")
        return record
