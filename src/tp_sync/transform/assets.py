"""Download of images and stylesheets referenced by remote content."""

import logging
from pathlib import Path

from tp_sync.errors import UnsafePathError
from tp_sync.fetcher.remote_api import RemoteApi
from tp_sync.storage.artifacts import write_atomic
from tp_sync.utils.url_utils import download_target, is_remote_url, make_absolute

logger = logging.getLogger(__name__)


class AssetDownloader:
    """Fetch binary resources from the remote into the output tree."""

    def __init__(self, api: RemoteApi):
        self.api = api
        self.images_written = 0

    async def download_images(self, images: list[str], output_root: Path, base_uri: str) -> int:
        """Download every image resolving under the remote; returns files written.

        Each image is stored below ``output_root`` at the path it was
        referenced with. Failures are logged and skipped.
        """
        remote = self.api.remote
        written = 0
        for src in dict.fromkeys(images):
            url = make_absolute(base_uri, src)
            if not is_remote_url(url, remote):
                continue
            try:
                target = download_target(src, remote, output_root)
            except UnsafePathError as e:
                logger.warning("Skipping image %s: %s", url, e)
                continue
            logger.debug("Loading image: %s", url)
            data = await self.api.fetch_binary(url)
            if data is None:
                continue
            await write_atomic(target, data)
            written += 1
        self.images_written += written
        return written

    async def ensure_stylesheet(self, odd: str, base_dir: Path) -> Path | None:
        """Download the CSS generated for ``odd`` unless it is already present."""
        name = odd[:-4] if odd.endswith(".odd") else odd
        out_file = Path(base_dir) / "css" / f"{name}.css"
        if out_file.exists():
            return out_file
        data = await self.api.fetch_stylesheet(name)
        if data is None:
            return None
        await write_atomic(out_file, data)
        logger.debug("Stored stylesheet %s", out_file)
        return out_file
