import json
import logging
from pathlib import Path

from app.core.errors import DuplicateVersion, MissingRequiredField, OTAError
from app.models.firmware import ReleaseRequest, ReleaseResult
from app.storage.firmware_store import FirmwareCatalog

logger = logging.getLogger(__name__)


def require_fields(*values) -> None:
    if not all(values):
        raise MissingRequiredField()


class ReleaseCoordinator:
    def __init__(self, catalog: FirmwareCatalog):
        self.catalog = catalog

    async def release(self, request: ReleaseRequest) -> ReleaseResult:
        """Validate and publish a new release.

        Checks run in order and the first failure wins: required fields,
        duplicate version, artifact existence. Nothing is inserted unless all
        of them pass.
        """
        require_fields(request.version, request.filename, request.changelog)

        if self.catalog.contains(request.version):
            raise DuplicateVersion()

        release, metadata = await self.catalog.publish(
            request.version,
            request.filename,
            request.changelog,
            request.mandatory,
        )

        return ReleaseResult(
            message=f"Firmware v{release.version} released",
            version=release.version,
            file_size=metadata.size,
        )

    async def seed_from_file(self, path: str) -> int:
        """Publish the releases listed in a JSON file of ``{version: {...}}``.

        Entries with empty fields, a missing artifact or a repeated version are
        skipped.
        """
        entries = json.loads(Path(path).read_text())
        published = 0

        for version, entry in entries.items():
            filename = entry.get("filename", "")
            changelog = entry.get("changelog", "")
            try:
                require_fields(version, filename, changelog)
                await self.catalog.publish(
                    version,
                    filename,
                    changelog,
                    bool(entry.get("mandatory", False)),
                    release_date=entry.get("release_date"),
                )
            except OTAError as e:
                logger.warning(f"Skipping seed release v{version}: {e.detail}")
                continue
            published += 1

        logger.info(f"Seeded {published} of {len(entries)} releases from {path}")
        return published
