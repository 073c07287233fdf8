import asyncio
import hashlib
import logging

from app.core.errors import TransientIO
from app.storage.blob_store import BlobStore

logger = logging.getLogger(__name__)


class IntegrityVerifier:
    """Content digest of an artifact, recomputed from the full bytes on every call."""

    def __init__(self, blob_store: BlobStore, algorithm: str = "md5", timeout: float = 30.0):
        hashlib.new(algorithm)
        self.blob_store = blob_store
        self.algorithm = algorithm
        self.timeout = timeout

    async def checksum(self, filename: str) -> str:
        try:
            return await asyncio.wait_for(self._digest(filename), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"Checksum of {filename} timed out after {self.timeout}s")
            raise TransientIO() from e

    async def _digest(self, filename: str) -> str:
        digest = hashlib.new(self.algorithm)
        async for chunk in self.blob_store.stream(filename):
            digest.update(chunk)
        return digest.hexdigest()
