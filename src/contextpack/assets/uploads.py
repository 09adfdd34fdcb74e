"""Binary asset uploads with a provider-expiry reuse window."""

import asyncio
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from contextpack.errors import ProviderProcessingFailure
from contextpack.models import UploadedAsset
from contextpack.protocols import AssetHost, HostedFile
from contextpack.protocols.asset_host import STATE_FAILED, STATE_PROCESSING

logger = logging.getLogger(__name__)


@contextmanager
def scratch_file(data: bytes, file_name: str) -> Iterator[Path]:
    """Write ``data`` to a temporary file that is removed on exit."""
    suffix = Path(file_name).suffix
    fd, raw_path = tempfile.mkstemp(prefix="contextpack-upload-", suffix=suffix)
    path = Path(raw_path)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


class BinaryAssetUploadManager:
    """Uploads binaries to the asset host and reuses them inside a window.

    The window (47h by default) is shorter than the provider's hard expiry
    (48h); an asset older than the window is always uploaded again.
    """

    DEFAULT_REUSE_WINDOW = 47 * 60 * 60

    def __init__(
        self,
        host: AssetHost,
        reuse_window_seconds: float = DEFAULT_REUSE_WINDOW,
        poll_interval: float = 0.5,
        max_polls: int = 120,
        clock: Callable[[], float] = time.time,
    ):
        self.host = host
        self.reuse_window_seconds = reuse_window_seconds
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._clock = clock
        self._assets: dict[str, UploadedAsset] = {}

    def cached(self, source_id: str) -> UploadedAsset | None:
        """Return the cached asset for ``source_id`` if still reusable."""
        asset = self._assets.get(source_id)
        if asset and asset.is_reusable(self._clock(), self.reuse_window_seconds):
            return asset
        return None

    def remember(self, assets: dict[str, UploadedAsset]) -> None:
        """Seed the cache with assets uploaded by another process.

        Assets outside the reuse window, and those older than what is
        already cached, are ignored.
        """
        now = self._clock()
        for source_id, asset in assets.items():
            if not asset.is_reusable(now, self.reuse_window_seconds):
                continue
            current = self._assets.get(source_id)
            if current is None or current.uploaded_at < asset.uploaded_at:
                self._assets[source_id] = asset

    def assets(self) -> dict[str, UploadedAsset]:
        """Every asset still inside the reuse window, keyed by source id."""
        now = self._clock()
        return {
            source_id: asset
            for source_id, asset in self._assets.items()
            if asset.is_reusable(now, self.reuse_window_seconds)
        }

    def clear(self) -> None:
        self._assets.clear()

    async def get_or_upload(
        self, source_id: str, data: bytes, name: str, mime_type: str
    ) -> UploadedAsset:
        """Return a reusable asset for ``source_id``, uploading when needed.

        Raises:
            ProviderProcessingFailure: If the host fails to process the file
            TransientFetchError: If the upload request fails
        """
        cached = self.cached(source_id)
        if cached is not None:
            return cached

        hosted = await self._upload(data, name, mime_type)
        asset = UploadedAsset(
            source_id=source_id,
            provider_uri=hosted.uri,
            mime_type=hosted.mime_type or mime_type,
            display_name=name,
            uploaded_at=self._clock(),
        )
        self._assets[source_id] = asset
        logger.info(f"Uploaded asset {name!r} -> {asset.provider_uri}")
        return asset

    async def _upload(self, data: bytes, name: str, mime_type: str) -> HostedFile:
        with scratch_file(data, name) as path:
            hosted = await self.host.upload(path, name, mime_type)

        polls = 0
        while hosted.state == STATE_PROCESSING:
            if polls >= self.max_polls:
                raise ProviderProcessingFailure(
                    f"Asset {name!r} still processing after {polls} polls"
                )
            await asyncio.sleep(self.poll_interval)
            hosted = await self.host.poll_state(hosted.ref)
            polls += 1

        if hosted.state == STATE_FAILED:
            raise ProviderProcessingFailure(f"Asset processing failed for {name!r}")
        return hosted
