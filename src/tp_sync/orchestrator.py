"""Main orchestrator that coordinates the synchronization pipeline."""

import functools
import logging
import time
from collections.abc import Mapping
from pathlib import Path

import aiofiles  # type: ignore[import-untyped]
import httpx
from rich.console import Console
from rich.table import Table

from tp_sync.config import SyncConfig
from tp_sync.discovery import CATALOG_CACHE_KEY, Catalog, CollectionCrawler, build_catalog
from tp_sync.fetcher import RemoteApi, RemoteClient
from tp_sync.index import Indexer, SecondaryIndex, SelectorIndexer
from tp_sync.storage import CacheKind, ContentCache, write_json
from tp_sync.transform import (
    AssetDownloader,
    PageContext,
    PageResult,
    PageTransformer,
    ViewRetriever,
)
from tp_sync.utils import DirectoryLocks, WorkQueue

logger = logging.getLogger(__name__)

CATALOG_FILE = "teidocuments.json"


class SyncResult:
    """Result of a synchronization run."""

    def __init__(self):
        self.pages: list[PageResult] = []
        self.errors: list[tuple[str, str]] = []  # (page, message)
        self.documents: int = 0
        self.catalog_file: Path | None = None
        self.pipeline_start: float = 0.0
        self.pipeline_end: float = 0.0

    @property
    def views_refreshed(self) -> int:
        return sum(p.views_refreshed for p in self.pages)

    @property
    def views_reused(self) -> int:
        return sum(p.views_reused for p in self.pages)

    @property
    def pages_written(self) -> int:
        return sum(p.pages_written for p in self.pages)

    @property
    def error_count(self) -> int:
        return len(self.errors)


class Synchronizer:
    """Coordinates page transforms, cached fetches and the collection crawl."""

    def __init__(
        self,
        config: SyncConfig,
        console: Console | None = None,
        indexers: Mapping[str, Indexer] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.console = console or Console()
        self.client = RemoteClient(config.remote, transport=transport)
        self.api = RemoteApi(self.client)
        self.cache = ContentCache(config.cache.directory, enabled=config.cache.enabled)
        self.assets = AssetDownloader(self.api)
        self.queue = WorkQueue(config.concurrency)
        self.locks = DirectoryLocks()

        configured: dict[str, Indexer] = {
            name: SelectorIndexer.from_config(definition)
            for name, definition in config.index.items()
        }
        configured.update(indexers or {})
        self.secondary = SecondaryIndex(configured)

        self.pages = PageTransformer(
            self.api,
            ViewRetriever(self.api, self.assets, limit=config.limit),
            self.assets,
            self.locks,
            secondary=self.secondary if self.secondary else None,
        )
        self.crawler = CollectionCrawler(
            self.api, self.assets, page_size=config.collection_page_size
        )
        self.result = SyncResult()

    async def __aenter__(self):
        await self.client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.client.__aexit__(exc_type, exc_val, exc_tb)

    async def transform(self, content: str, context: PageContext) -> str:
        """Refresh the view data of one page; the page content is returned unchanged."""
        if self.config.disabled:
            return content
        page = await self.pages.transform(content, context)
        if page is not None:
            self.result.pages.append(page)
        return content

    async def add_transform(self, content: str, context: PageContext) -> str:
        """Run ``transform`` through the bounded work queue."""
        return await self.queue.submit(functools.partial(self.transform, content, context))

    async def sync_site(self, site_dir: Path | None = None) -> SyncResult:
        """Transform every built page below ``site_dir``, then crawl collections."""
        site_dir = Path(site_dir or self.config.output_dir)
        result = self.result
        result.pipeline_start = time.monotonic()
        if self.config.disabled:
            logger.info("Synchronization disabled")
            result.pipeline_end = time.monotonic()
            return result

        pages = [
            path
            for path in sorted(site_dir.rglob("*.html"))
            if path.relative_to(site_dir).parts[0] != "collections"
        ]
        self.console.print(f"[blue]Checking {len(pages)} pages in {site_dir}...[/blue]")

        jobs = [
            (str(path), functools.partial(self._transform_file, path, site_dir))
            for path in pages
        ]
        outcomes = await self.queue.run_all(jobs)
        for (label, _), outcome in zip(jobs, outcomes):
            if isinstance(outcome, OSError):
                raise outcome
            if isinstance(outcome, Exception):
                result.errors.append((label, str(outcome)))

        if self.config.collections:
            catalog = await self.fetch_collections(site_dir)
            result.documents = sum(len(entries) for entries in catalog.values())
            result.catalog_file = site_dir / CATALOG_FILE
            await write_json(result.catalog_file, catalog)

        result.pipeline_end = time.monotonic()
        return result

    async def _transform_file(self, path: Path, base_dir: Path) -> str:
        async with aiofiles.open(path, encoding="utf-8") as f:
            content = await f.read()
        context = PageContext(output_path=path, base_dir=base_dir, input_path=path)
        return await self.transform(content, context)

    async def fetch(self, url: str) -> str:
        """Fetch a remote resource as text, served from the cache for a day."""
        if self.config.disabled:
            return ""
        max_age = self.config.cache.max_age
        if await self.cache.is_fresh(url, max_age):
            return await self.cache.read(url)

        logger.debug("Fetching %s", url)
        text = await self.api.fetch_text(url)
        if text is None:
            return ""
        await self.cache.write(url, text, CacheKind.TEXT)
        return text

    async def fetch_collections(self, output_dir: Path) -> Catalog:
        """Crawl the collections into ``output_dir`` and build the document catalog.

        A fresh cached catalog short-circuits the crawl as long as the
        listing pages it was built from are still on disk.
        """
        if self.config.disabled or not self.config.collections:
            return {}
        output_dir = Path(output_dir)
        listed = (output_dir / "collections" / "1.html").exists()
        if listed and await self.cache.is_fresh(CATALOG_CACHE_KEY, self.config.cache.max_age):
            logger.debug("Using cached document catalog")
            return await self.cache.read(CATALOG_CACHE_KEY)

        paths = await self.crawler.crawl(output_dir)
        catalog = await build_catalog(paths, self.api)
        await self.cache.write(CATALOG_CACHE_KEY, catalog, CacheKind.JSON)
        return catalog

    def print_summary(self, result: SyncResult | None = None) -> None:
        """Print a post-run summary report."""
        result = result or self.result
        self.console.print()
        self.console.print("[bold]Synchronization complete[/bold]")

        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_row("Pages with views", str(len(result.pages)))
        table.add_row("Views refreshed", f"[green]{result.views_refreshed}[/green]")
        table.add_row("Views unchanged", str(result.views_reused))
        table.add_row("Fragments written", str(result.pages_written))
        table.add_row("Images written", str(self.assets.images_written))
        table.add_row("Remote requests", str(self.client.request_count))
        table.add_row("Cache hits", str(self.cache.hits))
        if self.config.collections:
            table.add_row("Documents in catalog", str(result.documents))
        if result.pipeline_end > result.pipeline_start:
            table.add_row("Total time", f"{result.pipeline_end - result.pipeline_start:.1f}s")
        self.console.print(table)

        if result.errors:
            self.console.print()
            self.console.print(f"[bold red]Errors ({result.error_count})[/bold red]")
            for page, error in result.errors[:10]:
                self.console.print(f"  [red]{page}[/red]: {error}")
            if len(result.errors) > 10:
                self.console.print(f"  [dim]... and {len(result.errors) - 10} more errors[/dim]")
