"""File registry: the JSON-encoded list of file records.

Every read loads the whole list, every write serializes it back. Writes go
to a temp file which is then renamed over the data file, so a reader always
sees a complete list. Read-modify-write cycles run one at a time behind
``self._lock``; plain reads do not wait for it.
"""
import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from confdrop.exceptions import NotFoundError, StorageError, ValidationError
from confdrop.schemas.file import FileMetadata, FileRecord, PublicFile, RegistryStats

logger = logging.getLogger(__name__)

_records_adapter = TypeAdapter(list[FileRecord])

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_file_size(byte_size: int) -> str:
    """Human readable size, base 1024, at most two decimals: 1536 -> '1.5 KB'."""
    if byte_size <= 0:
        return "0 Bytes"
    index = 0
    while index < len(SIZE_UNITS) - 1 and byte_size >= 1024 ** (index + 1):
        index += 1
    value = f"{byte_size / 1024 ** index:.2f}".rstrip("0").rstrip(".")
    return f"{value} {SIZE_UNITS[index]}"


def validate_metadata(meta: FileMetadata, now: Optional[datetime] = None) -> FileMetadata:
    """Check required fields and future expiry. Returns a trimmed copy."""
    name = (meta.name or "").strip()
    network = (meta.network or "").strip()
    if not name or not network or meta.expiry_date is None:
        raise ValidationError("Name, network and expiry date are required.")
    if meta.expiry_date <= (now or utcnow()):
        raise ValidationError("Expiry date must be in the future.")
    return FileMetadata(
        name=name,
        network=network,
        expiry_date=meta.expiry_date,
        description=(meta.description or "").strip(),
    )


class FileRegistry:
    """Owns the persisted list of FileRecord entries."""

    def __init__(self, data_file: Path):
        self.data_file = Path(data_file)
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the data file as an empty list if missing or blank. Raises on failure."""
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        if self.data_file.exists() and self.data_file.read_text(encoding="utf-8").strip():
            await self._read()
            return
        self.data_file.write_text("[]", encoding="utf-8")
        logger.info(f"Initialized empty registry at {self.data_file}")

    async def _read(self) -> list[FileRecord]:
        try:
            async with aiofiles.open(self.data_file, "r", encoding="utf-8") as f:
                raw = await f.read()
            return _records_adapter.validate_python(json.loads(raw or "[]"))
        except (OSError, ValueError, PydanticValidationError) as e:
            logger.error(f"Failed to read registry {self.data_file}: {e}")
            raise StorageError("Could not read the file registry.") from e

    async def _write(self, records: list[FileRecord]) -> None:
        tmp_path = self.data_file.with_name(f".{self.data_file.name}.{uuid.uuid4().hex}.tmp")
        payload = json.dumps(
            _records_adapter.dump_python(records, mode="json", by_alias=True),
            indent=2,
            ensure_ascii=False,
        )
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, self.data_file)
        except OSError as e:
            logger.error(f"Failed to write registry {self.data_file}: {e}")
            tmp_path.unlink(missing_ok=True)
            raise StorageError("Could not write the file registry.") from e

    @staticmethod
    def _index_of(records: list[FileRecord], file_id: str) -> int:
        for i, record in enumerate(records):
            if record.id == file_id:
                return i
        raise NotFoundError("File not found.")

    async def all(self) -> list[FileRecord]:
        """Raw records, storage order, stored names included."""
        return await self._read()

    async def get(self, file_id: str) -> FileRecord:
        records = await self._read()
        return records[self._index_of(records, file_id)]

    async def list_public(self, now: Optional[datetime] = None) -> list[PublicFile]:
        """Every record in storage order, without stored names, with isExpired."""
        now = now or utcnow()
        return [PublicFile.from_record(r, now) for r in await self._read()]

    def build_record(
        self,
        meta: FileMetadata,
        filename: str,
        stored_filename: str,
        byte_size: int,
        now: Optional[datetime] = None,
    ) -> FileRecord:
        """Validate metadata and build a new record. Nothing is persisted."""
        now = now or utcnow()
        meta = validate_metadata(meta, now)
        return FileRecord(
            id=str(uuid.uuid4()),
            filename=filename,
            stored_filename=stored_filename,
            name=meta.name,
            network=meta.network,
            expiry_date=meta.expiry_date,
            size=format_file_size(byte_size),
            description=meta.description or "",
            download_count=0,
            created_at=now,
        )

    async def add(self, record: FileRecord) -> FileRecord:
        """Append an already built record."""
        async with self._lock:
            records = await self._read()
            if any(r.id == record.id for r in records):
                raise ValidationError("Duplicate file id.")
            records.append(record)
            await self._write(records)
        logger.info(f"Registered file {record.id} ({record.stored_filename}, {record.size})")
        return record

    async def create(
        self,
        meta: FileMetadata,
        filename: str,
        stored_filename: str,
        byte_size: int,
    ) -> FileRecord:
        """Validate, build and append a record in one step."""
        return await self.add(self.build_record(meta, filename, stored_filename, byte_size))

    async def update(self, file_id: str, meta: FileMetadata) -> FileRecord:
        """Replace name, network, expiry and description. Everything else is kept."""
        async with self._lock:
            records = await self._read()
            index = self._index_of(records, file_id)
            meta = validate_metadata(meta)
            updated = records[index].model_copy(update={
                "name": meta.name,
                "network": meta.network,
                "expiry_date": meta.expiry_date,
                "description": meta.description or "",
            })
            records[index] = updated
            await self._write(records)
        logger.info(f"Updated file {file_id}")
        return updated

    async def delete(self, file_id: str) -> FileRecord:
        """Remove a record and return it. The caller removes the blob."""
        async with self._lock:
            records = await self._read()
            removed = records.pop(self._index_of(records, file_id))
            await self._write(records)
        logger.info(f"Deleted file {file_id}")
        return removed

    async def increment_download(self, file_id: str) -> FileRecord:
        async with self._lock:
            records = await self._read()
            index = self._index_of(records, file_id)
            record = records[index]
            record.download_count += 1
            await self._write(records)
        return record

    async def stats(self, now: Optional[datetime] = None) -> RegistryStats:
        """Counts over the current list. Nothing is cached."""
        now = now or utcnow()
        records = await self._read()
        active = sum(1 for r in records if r.expiry_date > now)
        return RegistryStats(
            total_files=len(records),
            active_files=active,
            expired_files=len(records) - active,
            total_downloads=sum(r.download_count for r in records),
        )
