import logging

import aiofiles.os
import pytest

from confdrop.exceptions import ExpiredError, NotFoundError, StorageError, UploadRejected, ValidationError
from confdrop.services.download import DownloadService
from confdrop.services.file_storage import FileStorageService
from confdrop.services.registry import FileRegistry
from confdrop.services.upload import UploadService
from tests.conftest import days_from_now, make_meta

pytestmark = pytest.mark.asyncio

ALLOWED = {".ovpn", ".conf", ".config", ".txt", ".crt", ".key", ".pem", ".zip", ".rar", ".7z"}


def blobs(storage: FileStorageService) -> list[str]:
    return sorted(p.name for p in storage.base_path.iterdir() if p.is_file())


def staged(storage: FileStorageService) -> list[str]:
    return sorted(p.name for p in storage.staging_path.iterdir())


@pytest.fixture
def uploads(registry, storage) -> UploadService:
    return UploadService(registry, storage, allowed_extensions=ALLOWED, max_bytes=1024)


@pytest.fixture
def downloads(registry, storage) -> DownloadService:
    return DownloadService(registry, storage)


async def test_generated_names_are_opaque_and_keep_extension():
    a = FileStorageService.generate_name("My Home.OVPN")
    b = FileStorageService.generate_name("My Home.OVPN")
    assert a != b
    assert a.endswith(".ovpn")
    assert "Home" not in a


async def test_upload_success(uploads: UploadService, registry: FileRegistry, storage: FileStorageService):
    record = await uploads.handle("a.ovpn", b"client\nremote vpn.example 1194\n", make_meta())

    assert record.filename == "a.ovpn"
    assert record.stored_filename != "a.ovpn"
    assert blobs(storage) == [record.stored_filename]
    assert staged(storage) == []
    assert await storage.read(record.stored_filename) == b"client\nremote vpn.example 1194\n"
    assert [r.id for r in await registry.all()] == [record.id]


@pytest.mark.parametrize("filename", ["evil.exe", "noext", "script.sh", "config.ovpn.php"])
async def test_upload_rejects_extension_before_writing(uploads, registry, storage, filename):
    with pytest.raises(UploadRejected):
        await uploads.handle(filename, b"data", make_meta())
    assert blobs(storage) == []
    assert staged(storage) == []
    assert await registry.all() == []


async def test_extension_check_is_case_insensitive(uploads: UploadService):
    record = await uploads.handle("CLIENT.OVPN", b"x", make_meta())
    assert record.filename == "CLIENT.OVPN"
    assert record.stored_filename.endswith(".ovpn")


async def test_upload_rejects_missing_file(uploads: UploadService):
    with pytest.raises(UploadRejected):
        await uploads.handle(None, b"", make_meta())


async def test_upload_rejects_oversize(uploads, registry, storage):
    with pytest.raises(UploadRejected) as exc_info:
        await uploads.handle("big.zip", b"x" * 1025, make_meta())
    assert "Maximum 1 KB" in exc_info.value.message
    assert blobs(storage) == []
    assert staged(storage) == []


async def test_upload_discards_bytes_on_invalid_metadata(uploads, registry, storage):
    with pytest.raises(ValidationError):
        await uploads.handle("a.ovpn", b"x", make_meta(expiry_date=days_from_now(-1)))
    with pytest.raises(ValidationError):
        await uploads.handle("a.ovpn", b"x", make_meta(name=""))

    assert blobs(storage) == []
    assert staged(storage) == []
    assert await registry.all() == []


async def test_upload_removes_blob_when_registry_write_fails(uploads, registry, storage):
    registry.data_file.write_text("{broken", encoding="utf-8")

    with pytest.raises(StorageError):
        await uploads.handle("a.ovpn", b"x", make_meta())

    assert blobs(storage) == []
    assert staged(storage) == []


async def test_download_counts(uploads, downloads, registry):
    record = await uploads.handle("a.ovpn", b"x", make_meta())

    for _ in range(3):
        resolved = await downloads.resolve(record.id)

    assert resolved.path.read_bytes() == b"x"
    assert resolved.record.filename == "a.ovpn"
    assert (await registry.get(record.id)).download_count == 3


async def test_download_unknown_id(downloads):
    with pytest.raises(NotFoundError):
        await downloads.resolve("does-not-exist")


async def test_download_expired_is_forbidden_even_with_bytes(uploads, downloads, registry, storage):
    record = await uploads.handle("a.ovpn", b"x", make_meta(expiry_date=days_from_now(1)))
    assert await storage.exists(record.stored_filename)

    with pytest.raises(ExpiredError):
        await downloads.resolve(record.id, now=days_from_now(2))
    assert (await registry.get(record.id)).download_count == 0


async def test_download_missing_blob(uploads, downloads, registry, storage):
    record = await uploads.handle("a.ovpn", b"x", make_meta())
    assert await storage.delete(record.stored_filename) is True

    with pytest.raises(NotFoundError):
        await downloads.resolve(record.id)
    assert (await registry.get(record.id)).download_count == 0


async def test_storage_delete_missing_is_not_an_error(storage: FileStorageService):
    assert await storage.delete("1-missing.ovpn") is False


async def test_storage_paths_stay_inside_upload_dir(storage: FileStorageService):
    assert storage.path_for("../../etc/passwd").parent == storage.base_path


@pytest.fixture
def failing_remove(monkeypatch):
    async def remove(path, *args, **kwargs):
        raise OSError("disk is read-only")

    monkeypatch.setattr(aiofiles.os, "remove", remove)


async def test_failed_discard_keeps_original_error(uploads, registry, storage, failing_remove, caplog):
    caplog.set_level(logging.ERROR, logger="confdrop.services.file_storage")

    with pytest.raises(ValidationError) as exc_info:
        await uploads.handle("a.ovpn", b"x", make_meta(expiry_date=days_from_now(-1)))

    assert "future" in exc_info.value.message
    assert any("Failed to discard staged upload" in r.getMessage() for r in caplog.records)
    assert await registry.all() == []


async def test_failed_blob_removal_keeps_storage_error(uploads, registry, storage, failing_remove, caplog):
    caplog.set_level(logging.ERROR, logger="confdrop.services.file_storage")
    registry.data_file.write_text("{broken", encoding="utf-8")

    with pytest.raises(StorageError) as exc_info:
        await uploads.handle("a.ovpn", b"x", make_meta())

    assert exc_info.value.message == "Could not read the file registry."
    assert any("Failed to delete blob" in r.getMessage() for r in caplog.records)
