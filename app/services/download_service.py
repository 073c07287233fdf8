import logging

from app.core.errors import ArtifactMissing
from app.models.firmware import DownloadTarget
from app.storage.blob_store import BlobStore
from app.storage.firmware_store import FirmwareCatalog

logger = logging.getLogger(__name__)


class DownloadService:
    def __init__(self, catalog: FirmwareCatalog, blob_store: BlobStore, download_mode: str = "direct"):
        self.catalog = catalog
        self.blob_store = blob_store
        self.download_mode = download_mode

    async def resolve(self, version: str) -> DownloadTarget:
        # Unknown versions fail before any blob access.
        release = self.catalog.get(version)

        metadata = await self.blob_store.stat(release.filename)
        if not metadata.exists:
            logger.error(f"File not found in blob store: {release.filename}")
            raise ArtifactMissing()

        redirect_url = None
        if self.download_mode == "direct":
            redirect_url = self.blob_store.locator(release.filename)

        logger.info(
            f"Download v{version}: {release.filename} ({metadata.size} bytes, "
            f"{'redirect' if redirect_url else 'stream'})"
        )
        return DownloadTarget(release=release, size=metadata.size, redirect_url=redirect_url)
