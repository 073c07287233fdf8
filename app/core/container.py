from dataclasses import dataclass

from fastapi import Request

from app.config.settings import Settings
from app.services.device_service import DeviceService
from app.services.download_service import DownloadService
from app.services.integrity_service import IntegrityVerifier
from app.services.release_service import ReleaseCoordinator
from app.services.update_service import UpdateNegotiator
from app.storage.blob_store import BlobStore, build_blob_store
from app.storage.device_store import DeviceRegistry
from app.storage.firmware_store import FirmwareCatalog


@dataclass
class Services:
    """State owned by one running server; built at startup, empty catalog."""

    blob_store: BlobStore
    catalog: FirmwareCatalog
    registry: DeviceRegistry
    verifier: IntegrityVerifier
    negotiator: UpdateNegotiator
    downloads: DownloadService
    releases: ReleaseCoordinator
    devices: DeviceService

    async def close(self) -> None:
        await self.blob_store.close()


def build_services(settings: Settings, blob_store: BlobStore = None) -> Services:
    blob_store = blob_store or build_blob_store(settings)
    catalog = FirmwareCatalog(blob_store)
    registry = DeviceRegistry()
    verifier = IntegrityVerifier(
        blob_store,
        algorithm=settings.checksum_algorithm,
        timeout=settings.blob_timeout_seconds,
    )

    return Services(
        blob_store=blob_store,
        catalog=catalog,
        registry=registry,
        verifier=verifier,
        negotiator=UpdateNegotiator(
            catalog,
            registry,
            blob_store,
            verifier,
            download_mode=settings.download_mode,
            public_base_url=settings.public_base_url,
        ),
        downloads=DownloadService(catalog, blob_store, download_mode=settings.download_mode),
        releases=ReleaseCoordinator(catalog),
        devices=DeviceService(registry),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
