import logging
from datetime import datetime, timezone
from typing import Optional

from app.core.errors import ArtifactMissing, MissingParameter
from app.models.firmware import CheckRequest, UpdateDecision
from app.services.integrity_service import IntegrityVerifier
from app.storage.blob_store import BlobStore
from app.storage.device_store import DeviceRegistry
from app.storage.firmware_store import FirmwareCatalog

logger = logging.getLogger(__name__)

DOWNLOAD_PATH = "/api/v1/firmware/download"


class UpdateNegotiator:
    def __init__(
        self,
        catalog: FirmwareCatalog,
        registry: DeviceRegistry,
        blob_store: BlobStore,
        verifier: IntegrityVerifier,
        download_mode: str = "direct",
        public_base_url: Optional[str] = None,
    ):
        self.catalog = catalog
        self.registry = registry
        self.blob_store = blob_store
        self.verifier = verifier
        self.download_mode = download_mode
        self.public_base_url = public_base_url

    async def check_update(
        self, request: CheckRequest, base_url: str = "", api_key: str = ""
    ) -> UpdateDecision:
        if not request.device or not request.version:
            raise MissingParameter()

        logger.info(
            f"OTA check: device={request.device} version={request.version} "
            f"model={request.model} key={api_key[:4]}..."
        )

        self.registry.record(
            request.device,
            request.version,
            request.rssi,
            datetime.now(timezone.utc),
        )

        latest_version, release = self.catalog.latest()

        # Plain string comparison: "9.0.0" is newer than "10.0.0" here.
        needs_update = request.version < latest_version

        if not needs_update:
            logger.info(f"Device {request.device} is up to date (v{request.version})")
            return UpdateDecision(update_available=False, latest_version=latest_version)

        metadata = await self.blob_store.stat(release.filename)
        if not metadata.exists:
            logger.error(f"Firmware file not found in blob store: {release.filename}")
            raise ArtifactMissing()

        checksum = await self.verifier.checksum(release.filename)
        download_url = self.download_url(latest_version, release.filename, base_url)

        logger.info(
            f"Update available for {request.device}: v{latest_version} "
            f"({metadata.size} bytes, {self.verifier.algorithm} {checksum}, "
            f"mandatory={release.mandatory})"
        )

        return UpdateDecision(
            update_available=True,
            latest_version=latest_version,
            download_url=download_url,
            checksum=checksum,
            mandatory=release.mandatory,
            changelog=release.changelog,
            file_size=metadata.size,
        )

    def download_url(self, version: str, filename: str, base_url: str = "") -> str:
        if self.download_mode == "direct":
            direct = self.blob_store.locator(filename)
            if direct:
                return direct

        base = (self.public_base_url or base_url).rstrip("/")
        return f"{base}{DOWNLOAD_PATH}/{version}"
