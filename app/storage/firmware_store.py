import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from app.core.errors import ArtifactMissing, DuplicateVersion, VersionNotFound
from app.models.firmware import FirmwareRelease
from app.storage.blob_store import BlobMetadata, BlobStore

logger = logging.getLogger(__name__)


class FirmwareCatalog:
    """In-memory registry of published releases, keyed by version string.

    The catalog only grows. Version keys are opaque strings: "latest" is the
    greatest key under plain string comparison, so "10.0.0" sorts before
    "2.0.0". Devices in the field depend on this exact ordering; do not switch
    it to semantic-version comparison.
    """

    def __init__(self, blob_store: BlobStore):
        self.blob_store = blob_store
        self._releases: dict[str, FirmwareRelease] = {}
        self._lock = threading.Lock()

    def get(self, version: str) -> FirmwareRelease:
        release = self._releases.get(version)
        if release is None:
            raise VersionNotFound()
        return release

    def contains(self, version: str) -> bool:
        return version in self._releases

    def latest(self) -> tuple[str, FirmwareRelease]:
        releases = self.snapshot()
        if not releases:
            raise VersionNotFound("No firmware releases published")

        # Lexicographic on the raw string, not semantic.
        version = max(releases)
        return version, releases[version]

    def versions(self) -> list[str]:
        return sorted(self.snapshot())

    def snapshot(self) -> dict[str, FirmwareRelease]:
        return dict(self._releases)

    async def publish(
        self,
        version: str,
        filename: str,
        changelog: str,
        mandatory: bool = False,
        release_date: Optional[str] = None,
    ) -> tuple[FirmwareRelease, BlobMetadata]:
        if self.contains(version):
            raise DuplicateVersion()

        # Blob I/O stays outside the lock.
        metadata = await self.blob_store.stat(filename)
        if not metadata.exists:
            raise ArtifactMissing()

        release = FirmwareRelease(
            version=version,
            filename=filename,
            release_date=release_date or datetime.now(timezone.utc).date().isoformat(),
            changelog=changelog,
            mandatory=mandatory,
        )

        with self._lock:
            if version in self._releases:
                raise DuplicateVersion()
            self._releases[version] = release

        logger.info(f"Published firmware v{version} ({filename}, {metadata.size} bytes)")
        return release, metadata
