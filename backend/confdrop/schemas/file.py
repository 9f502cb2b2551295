"""File record and file API schemas."""
from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator

from confdrop.schemas.base import CamelModel, EnvelopeModel


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class FileMetadata(CamelModel):
    """Admin-editable fields. Shared by upload and update."""
    name: str = ""
    network: str = ""
    expiry_date: Optional[UtcDatetime] = None
    description: Optional[str] = None


class FileRecord(CamelModel):
    """One persisted entry of the registry."""
    id: str
    filename: str
    stored_filename: str
    name: str
    network: str
    expiry_date: UtcDatetime
    size: str
    description: str = ""
    download_count: int = 0
    created_at: UtcDatetime

    def is_expired(self, now: datetime) -> bool:
        return self.expiry_date < now


class PublicFile(CamelModel):
    """Listing view of a record. Never carries the stored filename."""
    id: str
    filename: str
    name: str
    network: str
    expiry_date: UtcDatetime
    size: str
    description: str = ""
    download_count: int = 0
    created_at: UtcDatetime
    is_expired: bool

    @classmethod
    def from_record(cls, record: FileRecord, now: datetime) -> "PublicFile":
        data = record.model_dump(exclude={"stored_filename"})
        return cls(**data, is_expired=record.is_expired(now))


class RegistryStats(CamelModel):
    total_files: int = 0
    active_files: int = 0
    expired_files: int = 0
    total_downloads: int = 0


class FileListResponse(EnvelopeModel):
    files: list[PublicFile]


class FileResponse(EnvelopeModel):
    message: str = ""
    file: FileRecord


class StatsResponse(EnvelopeModel):
    stats: RegistryStats
