"""Public download: resolve, expiry check, presence check, count."""
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from confdrop.exceptions import ExpiredError, NotFoundError
from confdrop.schemas.file import FileRecord
from confdrop.services.file_storage import FileStorageService
from confdrop.services.registry import FileRegistry, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedDownload:
    record: FileRecord
    path: Path


class DownloadService:
    def __init__(self, registry: FileRegistry, storage: FileStorageService):
        self.registry = registry
        self.storage = storage

    async def resolve(self, file_id: str, now: Optional[datetime] = None) -> ResolvedDownload:
        """Find a downloadable file and count the download.

        The counter is incremented before the bytes are sent; a transfer
        that fails midway is still counted.
        """
        record = await self.registry.get(file_id)
        if record.is_expired(now or utcnow()):
            raise ExpiredError("This file has expired.")
        if not await self.storage.exists(record.stored_filename):
            logger.error(f"Blob {record.stored_filename} missing for file {file_id}")
            raise NotFoundError("Physical file not found.")

        record = await self.registry.increment_download(file_id)
        logger.info(f"Download of {file_id} (count={record.download_count})")
        return ResolvedDownload(record=record, path=self.storage.path_for(record.stored_filename))
