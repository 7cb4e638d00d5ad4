from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from storegate.common.config import Settings, get_settings
from storegate.main import create_app

from tests.services.fake_storage import FakeStorageClient

TEST_BUCKET = "test-bucket"
TEST_TOKEN = "secret-token"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        S3_BUCKET=TEST_BUCKET,
        AUTH_TOKEN=TEST_TOKEN,
        ENABLE_METRICS=False,
        STORAGE_PART_SIZE_BYTES=4,
    )


@pytest.fixture()
def fake_storage() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture()
def client(settings, fake_storage) -> TestClient:
    app = create_app(settings, storage_client=fake_storage)
    return TestClient(app)


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_TOKEN}"}
