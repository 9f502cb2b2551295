from datetime import datetime, timedelta, timezone

import bcrypt
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from confdrop.config import Settings
from confdrop.main import create_app
from confdrop.rate_limit import limiter
from confdrop.schemas.file import FileMetadata
from confdrop.services.file_storage import FileStorageService
from confdrop.services.registry import FileRegistry

ADMIN_CODE = "30292812046102"


def days_from_now(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def make_meta(**overrides) -> FileMetadata:
    data = {
        "name": "Net1",
        "network": "Home",
        "expiry_date": days_from_now(1),
        "description": "",
    }
    data.update(overrides)
    return FileMetadata(**data)


@pytest.fixture(scope="session")
def admin_hash() -> str:
    # Lowest bcrypt cost keeps the suite fast
    return bcrypt.hashpw(ADMIN_CODE.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def settings(tmp_path, admin_hash) -> Settings:
    return Settings(
        ADMIN_HASH=admin_hash,
        DATA_FILE=tmp_path / "data" / "files.json",
        UPLOAD_DIR=tmp_path / "uploads",
        PUBLIC_DIR=tmp_path / "public",
        CORS_ORIGINS="*",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(client) -> dict:
    response = client.post("/api/admin/login", json={"code": ADMIN_CODE})
    assert response.status_code == 200, response.text
    return {"X-Admin-Token": response.json()["token"]}


@pytest_asyncio.fixture
async def registry(tmp_path) -> FileRegistry:
    registry = FileRegistry(tmp_path / "data" / "files.json")
    await registry.initialize()
    return registry


@pytest.fixture
def storage(tmp_path) -> FileStorageService:
    storage = FileStorageService(tmp_path / "uploads")
    storage.initialize()
    return storage
