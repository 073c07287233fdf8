import asyncio

import pytest
from fastapi.testclient import TestClient

from app.config.settings import get_settings
from app.core.container import build_services
from app.core.errors import ArtifactMissing
from app.main import app
from app.storage.blob_store import BlobMetadata

AUTH = {"Authorization": "Bearer test123"}

RELEASES = {
    "2.2.0": ("meril_01.ino.esp32_v2_2.bin", b"firmware-2.2.0" * 64, "Initial release", False),
    "2.3.0": ("sketch_feb14a_v2_3.ino.bin", b"firmware-2.3.0" * 96, "Updated version", True),
    "3.1.0": (
        "sketch_feb16_3_1.ino.esp32.bin",
        b"firmware-3.1.0" * 128,
        "New features and improvements",
        False,
    ),
}


class MemoryBlobStore:
    """Blob store over a dict that records every call it receives."""

    def __init__(self, blobs=None, base_url=None):
        self.blobs = dict(blobs or {})
        self.base_url = base_url
        self.calls = []
        self.failures = {}

    async def stat(self, filename):
        self.calls.append(("stat", filename))
        await asyncio.sleep(0)
        if "stat" in self.failures:
            raise self.failures["stat"]
        if filename not in self.blobs:
            return BlobMetadata(exists=False)
        return BlobMetadata(exists=True, size=len(self.blobs[filename]))

    async def stream(self, filename):
        self.calls.append(("stream", filename))
        if "stream" in self.failures:
            raise self.failures["stream"]
        if filename not in self.blobs:
            raise ArtifactMissing()
        data = self.blobs[filename]
        for i in range(0, len(data), 100):
            yield data[i : i + 100]

    def locator(self, filename):
        if self.base_url:
            return f"{self.base_url}/{filename}"
        return None

    async def close(self):
        pass


@pytest.fixture(scope="function", autouse=True)
def settings_env(monkeypatch, tmp_path):
    """Point the app at a local firmware directory and proxied downloads."""
    monkeypatch.setenv("BLOB_BACKEND", "local")
    monkeypatch.setenv("BLOB_LOCAL_DIR", str(tmp_path / "firmware"))
    monkeypatch.setenv("DOWNLOAD_MODE", "proxy")
    monkeypatch.delenv("CATALOG_SEED_FILE", raising=False)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def auth_headers():
    return dict(AUTH)


@pytest.fixture
def releases():
    return RELEASES


@pytest.fixture
def firmware_dir(tmp_path):
    path = tmp_path / "firmware"
    path.mkdir()
    for filename, content, _, _ in RELEASES.values():
        (path / filename).write_bytes(content)
    return path


@pytest.fixture
def client(firmware_dir):
    """Client against a catalog holding 2.2.0, 2.3.0 and 3.1.0."""
    with TestClient(app) as test_client:
        for version, (filename, _, changelog, mandatory) in RELEASES.items():
            response = test_client.post(
                "/admin/firmware/release",
                json={
                    "version": version,
                    "filename": filename,
                    "changelog": changelog,
                    "mandatory": mandatory,
                },
                headers=AUTH,
            )
            assert response.status_code == 200
        yield test_client


@pytest.fixture
def blob_store():
    return MemoryBlobStore(
        {filename: content for filename, content, _, _ in RELEASES.values()}
    )


@pytest.fixture
def services(blob_store):
    return build_services(get_settings(), blob_store=blob_store)


@pytest.fixture
def published(services):
    """Services with the three releases published; call log cleared."""

    async def publish_all():
        for version, (filename, _, changelog, mandatory) in RELEASES.items():
            await services.catalog.publish(version, filename, changelog, mandatory)

    asyncio.run(publish_all())
    services.blob_store.calls.clear()
    return services


@pytest.fixture
def spy_client(published):
    """Client whose services run on the recording in-memory blob store."""
    with TestClient(app) as test_client:
        app.state.services = published
        yield test_client


@pytest.fixture
def unguarded_spy_client(published):
    """Like ``spy_client`` but returns 500 responses instead of re-raising."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        app.state.services = published
        yield test_client
