"""Firmware artifact storage.

Two backends share the ``BlobStore`` protocol: a public HTTP(S) bucket such as
S3, and a local directory. Both answer existence and size through ``stat`` and
hand out the bytes through ``stream``. Neither caches anything.
"""
import logging
import stat as stat_mode
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional, Protocol
from urllib.parse import quote

import aiofiles
import aiofiles.os
import httpx

from app.config.settings import Settings
from app.core.circuit_breaker import CircuitBreaker
from app.core.errors import ArtifactMissing, TransientIO

logger = logging.getLogger(__name__)

# Public S3 buckets answer 403 rather than 404 for unknown keys when listing is
# not allowed.
MISSING_STATUSES = {403, 404}


@dataclass
class BlobMetadata:
    exists: bool
    size: int = 0
    etag: Optional[str] = None


class BlobStore(Protocol):
    async def stat(self, filename: str) -> BlobMetadata:
        ...

    def stream(self, filename: str) -> AsyncIterator[bytes]:
        """Yield the artifact in chunks; raises ArtifactMissing or TransientIO."""
        ...

    def locator(self, filename: str) -> Optional[str]:
        """Direct URL for the artifact, or None if it must be proxied."""
        ...

    async def close(self) -> None:
        ...


class HttpBlobStore:
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        chunk_size: int = 65536,
        breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.chunk_size = chunk_size
        self.breaker = breaker or CircuitBreaker("blob-store")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )

    def locator(self, filename: str) -> Optional[str]:
        return f"{self.base_url}/{quote(filename)}"

    async def stat(self, filename: str) -> BlobMetadata:
        return await self.breaker.call(self._head, filename)

    async def _head(self, filename: str) -> BlobMetadata:
        url = self.locator(filename)
        try:
            response = await self._client.head(url)
        except httpx.HTTPError as e:
            logger.warning(f"HEAD {url} failed: {e!r}")
            raise TransientIO() from e

        if response.status_code in MISSING_STATUSES:
            return BlobMetadata(exists=False)
        if response.status_code != 200:
            logger.warning(f"HEAD {url} returned {response.status_code}")
            raise TransientIO()

        etag = response.headers.get("etag", "").replace('"', "")
        return BlobMetadata(
            exists=True,
            size=int(response.headers.get("content-length", "0")),
            etag=etag or None,
        )

    async def stream(self, filename: str) -> AsyncIterator[bytes]:
        url = self.locator(filename)
        self.breaker.before_call()
        succeeded = False

        # Every exit records an outcome, including cancellation by a timeout
        # and a consumer closing the generator early.
        try:
            async with self._client.stream("GET", url) as response:
                if response.status_code in MISSING_STATUSES:
                    succeeded = True
                    raise ArtifactMissing()
                if response.status_code != 200:
                    logger.warning(f"GET {url} returned {response.status_code}")
                    raise TransientIO()

                async for chunk in response.aiter_bytes(self.chunk_size):
                    yield chunk
            succeeded = True
        except httpx.HTTPError as e:
            logger.warning(f"GET {url} failed: {e!r}")
            raise TransientIO() from e
        finally:
            if succeeded:
                self.breaker.record_success()
            else:
                self.breaker.record_failure()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class LocalBlobStore:
    def __init__(self, root: str, chunk_size: int = 65536):
        self.root = Path(root).resolve()
        self.chunk_size = chunk_size

    def _path(self, filename: str) -> Optional[Path]:
        candidate = (self.root / filename).resolve()
        if self.root not in candidate.parents:
            return None
        return candidate

    def locator(self, filename: str) -> Optional[str]:
        return None

    async def stat(self, filename: str) -> BlobMetadata:
        path = self._path(filename)
        if path is None:
            return BlobMetadata(exists=False)

        try:
            result = await aiofiles.os.stat(path)
        except FileNotFoundError:
            return BlobMetadata(exists=False)
        except OSError as e:
            logger.warning(f"stat {path} failed: {e!r}")
            raise TransientIO() from e

        if not stat_mode.S_ISREG(result.st_mode):
            return BlobMetadata(exists=False)
        return BlobMetadata(exists=True, size=result.st_size)

    async def stream(self, filename: str) -> AsyncIterator[bytes]:
        path = self._path(filename)
        if path is None:
            raise ArtifactMissing()

        try:
            async with aiofiles.open(path, "rb") as f:
                while chunk := await f.read(self.chunk_size):
                    yield chunk
        except FileNotFoundError as e:
            raise ArtifactMissing() from e
        except OSError as e:
            logger.warning(f"read {path} failed: {e!r}")
            raise TransientIO() from e

    async def close(self) -> None:
        return None


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_backend == "local":
        logger.info(f"Using local blob store at {settings.blob_local_dir}")
        return LocalBlobStore(settings.blob_local_dir, settings.blob_chunk_size)

    if settings.blob_backend == "s3":
        logger.info(f"Using HTTP blob store at {settings.blob_base_url}")
        return HttpBlobStore(
            settings.blob_base_url,
            timeout=settings.blob_timeout_seconds,
            chunk_size=settings.blob_chunk_size,
            breaker=CircuitBreaker(
                "blob-store",
                failure_threshold=settings.circuit_breaker_failure_threshold,
                timeout_seconds=settings.circuit_breaker_timeout_seconds,
                half_open_max_calls=settings.circuit_breaker_half_open_max_calls,
            ),
        )

    raise ValueError(f"Unknown blob backend: {settings.blob_backend}")
