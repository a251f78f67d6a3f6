"""Transform of one built page: refresh the data behind its ``pb-view`` elements."""

import logging
from pathlib import Path

from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel

from tp_sync.errors import MissingMetadataError
from tp_sync.fetcher.remote_api import RemoteApi
from tp_sync.index.builder import IndexStore, merge_index
from tp_sync.index.secondary import SecondaryIndex
from tp_sync.transform.assets import AssetDownloader
from tp_sync.transform.params import (
    DOCUMENT_ATTRIBUTES,
    VIEW_ATTRIBUTES,
    ParameterBuilder,
    ViewReference,
)
from tp_sync.transform.staleness import Staleness, carry_forward, check_staleness
from tp_sync.transform.views import ViewRetriever, remove_stale_pages
from tp_sync.utils.work_queue import DirectoryLocks

logger = logging.getLogger(__name__)


class PageContext(BaseModel):
    """Paths of the page being transformed."""

    output_path: Path
    base_dir: Path
    input_path: Path | None = None

    @property
    def output_dir(self) -> Path:
        return self.output_path.parent


class PageResult(BaseModel):
    """Counters for one page transform."""

    output_dir: Path
    views: int = 0
    views_refreshed: int = 0
    views_reused: int = 0
    views_skipped: int = 0
    pages_written: int = 0
    images_written: int = 0
    records_indexed: int = 0


class PageTransformer:
    """Process the views of a page one after another.

    The whole read/merge/write cycle of a directory's ``index.json`` runs
    under that directory's lock.
    """

    def __init__(
        self,
        api: RemoteApi,
        retriever: ViewRetriever,
        assets: AssetDownloader,
        locks: DirectoryLocks,
        index_store: IndexStore | None = None,
        secondary: SecondaryIndex | None = None,
    ):
        self.api = api
        self.retriever = retriever
        self.assets = assets
        self.locks = locks
        self.index_store = index_store or IndexStore()
        self.secondary = secondary

    async def transform(self, content: str, context: PageContext) -> PageResult | None:
        """Refresh the data of every view in ``content``; ``None`` if it has none."""
        soup = BeautifulSoup(content, "lxml")
        elements = soup.find_all("pb-view")
        if not elements:
            return None

        output_dir = context.output_dir
        logger.debug("Found %d views in page %s", len(elements), context.output_path)
        output_dir.mkdir(parents=True, exist_ok=True)
        result = PageResult(output_dir=output_dir, views=len(elements))

        async with self.locks.lock_for(output_dir):
            old_index = await self.index_store.load(output_dir)
            owners = await self.index_store.load_owners(output_dir)
            page_name = context.output_path.name
            carried: dict[str, str] = {}
            fresh: dict[str, str] = {}
            on_page: list[str] = []
            refreshed: list[str] = []

            for position, element in enumerate(elements, start=1):
                component = str(element.get("id") or f"_v{position}")
                resolved = await self._resolve_view(soup, element, component, context)
                if resolved is None:
                    result.views_skipped += 1
                    continue
                view, last_modified = resolved
                on_page.append(component)
                owner = owners.get(component, page_name)
                if owner != page_name:
                    logger.warning(
                        "Component %s of %s replaces the one of %s in %s",
                        component,
                        page_name,
                        owner,
                        output_dir,
                    )

                first_page = output_dir / f"{component}-1.json"
                if check_staleness(last_modified, first_page) == Staleness.REUSE:
                    previous = carry_forward(old_index, component)
                    if previous:
                        logger.debug(
                            "Skipping component %s for %s as it is unchanged",
                            component,
                            view.document_path,
                        )
                        carried.update(previous)
                        result.views_reused += 1
                        continue

                if "odd" in view.parameters:
                    await self.assets.ensure_stylesheet(view.parameters["odd"], context.base_dir)

                logger.info("Retrieving %s for %s", component, view.document_path)
                view_result = await self.retriever.retrieve(view, output_dir)
                await remove_stale_pages(output_dir, component, keep=view_result.pages)
                fresh.update(view_result.entries)
                refreshed.append(component)
                result.views_refreshed += 1
                result.pages_written += view_result.pages
                result.images_written += view_result.images

            # Components of other pages sharing this directory stay indexed
            others = {c: o for c, o in owners.items() if o != page_name and c not in on_page}
            for component in others:
                carried.update(carry_forward(old_index, component))
            for component, owner in owners.items():
                if owner == page_name and component not in on_page:
                    logger.debug("Dropping component %s removed from %s", component, page_name)
                    await remove_stale_pages(output_dir, component)

            await self.index_store.save(output_dir, merge_index(carried, fresh))
            await self.index_store.save_owners(
                output_dir, {**others, **{c: page_name for c in on_page}}
            )

            if refreshed and self.secondary:
                result.records_indexed = await self.secondary.run(
                    output_dir, context.base_dir, components=refreshed
                )

        return result

    async def _resolve_view(
        self, soup: BeautifulSoup, element: Tag, component: str, context: PageContext
    ) -> tuple[ViewReference, str | None] | None:
        """Build the view reference of ``element`` and the document's lastModified.

        Raises ``MissingMetadataError`` when the document metadata cannot be
        loaded, since no parameters can be derived without it.
        """
        source_id = element.get("src")
        if not source_id:
            logger.warning(
                "No src attribute set for component %s in %s", component, context.input_path
            )
            return None
        document = soup.find(id=str(source_id))
        if not isinstance(document, Tag) or not document.get("path"):
            logger.warning(
                "Component %s refers to unknown document %s in %s",
                component,
                source_id,
                context.input_path,
            )
            return None

        document_path = str(document["path"])
        meta = await self.api.load_meta(document_path)
        if meta is None:
            raise MissingMetadataError(document_path)

        params = (
            ParameterBuilder()
            .from_meta(meta)
            .from_attributes(document, DOCUMENT_ATTRIBUTES)
            .from_attributes(element, VIEW_ATTRIBUTES)
            .from_user_params(element)
            .build()
        )
        view = ViewReference(
            id=component,
            source_id=str(source_id),
            document_path=document_path,
            parameters=params,
        )
        return view, meta.last_modified
