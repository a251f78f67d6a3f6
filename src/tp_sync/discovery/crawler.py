"""Recursive walk of the remote collection listings."""

import logging
from pathlib import Path

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from tp_sync.fetcher.remote_api import RemoteApi
from tp_sync.storage.artifacts import write_atomic
from tp_sync.transform.assets import AssetDownloader
from tp_sync.utils.url_utils import is_remote_url, make_absolute

logger = logging.getLogger(__name__)

TOTAL_HEADER = "pb-total"


class CollectionNode(BaseModel):
    """One collection being listed: where it lives remotely and locally."""

    collection: str | None = None  # None for the root collection
    root_dir: Path
    dir: Path

    def child(self, name: str) -> "CollectionNode":
        return CollectionNode(
            collection=f"{self.collection}/{name}" if self.collection else name,
            root_dir=self.root_dir / name,
            dir=self.dir / name,
        )


class ListingPage(BaseModel):
    """What a single listing page links to."""

    subcollections: list[str] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)


def parse_listing(content: str, remote: str) -> ListingPage:
    """Extract sub-collections, leaf documents and images from a listing page."""
    soup = BeautifulSoup(content, "lxml")
    listing = ListingPage()
    listing.images = [str(img["src"]) for img in soup.select("img[src]")]
    for link in soup.select(".document a[data-collection]"):
        listing.subcollections.append(str(link["data-collection"]))
    for link in soup.select(".document a:not([data-collection])"):
        href = link.get("href")
        if not href:
            continue
        href = str(href)
        if href.endswith(".md"):
            continue
        if is_remote_url(make_absolute(remote, href), remote):
            listing.documents.append(href)
    return listing


def parse_total(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.debug("Ignoring non-numeric %s header: %r", TOTAL_HEADER, value)
        return None


class CollectionCrawler:
    """Walk a collection tree, storing each listing page as ``<start>.html``.

    Listing pages of one collection are fetched before any of its
    sub-collections; everything runs sequentially.
    """

    def __init__(self, api: RemoteApi, assets: AssetDownloader, page_size: int = 10):
        self.api = api
        self.assets = assets
        self.page_size = page_size
        self.listings_fetched = 0

    async def crawl(self, root_dir: Path) -> list[str]:
        """Crawl from the root collection and return the discovered document paths."""
        root_dir = Path(root_dir)
        documents: list[str] = []
        root = CollectionNode(root_dir=root_dir, dir=root_dir / "collections")
        await self.crawl_collection(root, documents)
        logger.info("Found %d documents in collections", len(documents))
        return documents

    async def crawl_collection(self, node: CollectionNode, documents: list[str]) -> None:
        """Fetch every listing page of ``node`` then recurse into its children.

        Discovered document paths are appended to ``documents``.
        """
        subcollections: list[str] = []
        start = 1
        while True:
            listing = await self._fetch_listing(node, start, documents)
            if listing is None:
                break
            page, total = listing
            subcollections.extend(page.subcollections)
            if total is None or start + self.page_size >= total:
                break
            start += self.page_size

        for name in subcollections:
            await self.crawl_collection(node.child(name), documents)

    async def _fetch_listing(
        self, node: CollectionNode, start: int, documents: list[str]
    ) -> tuple[ListingPage, int | None] | None:
        node.dir.mkdir(parents=True, exist_ok=True)
        logger.info("Retrieving collection %s; start = %d", node.collection or "/", start)
        response = await self.api.fetch_collection(node.collection, start)
        if response is None:
            return None
        self.listings_fetched += 1

        await write_atomic(node.dir / f"{start}.html", response.text)
        page = parse_listing(response.text, self.api.remote)
        documents.extend(page.documents)
        await self.assets.download_images(page.images, node.root_dir, self.api.remote)
        return page, parse_total(response.headers.get(TOTAL_HEADER))
