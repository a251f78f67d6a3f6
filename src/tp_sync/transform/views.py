"""Retrieval of all pages of a view from the remote parts endpoint."""

import logging
import re
from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path

import aiofiles.os  # type: ignore[import-untyped]
from pydantic import BaseModel, Field

from tp_sync.fetcher.remote_api import RemoteApi
from tp_sync.index.builder import fingerprint
from tp_sync.storage.artifacts import write_json
from tp_sync.transform.assets import AssetDownloader
from tp_sync.transform.fragment import transform_fragment
from tp_sync.transform.params import ViewReference
from tp_sync.utils.url_utils import make_absolute

logger = logging.getLogger(__name__)

PAGINATION_PARAM = "root"

PageFetcher = Callable[[dict[str, str]], Awaitable[dict | None]]


class RetrievedPage(BaseModel):
    """One page returned by the parts endpoint."""

    number: int
    params: dict[str, str]
    data: dict


class ViewResult(BaseModel):
    """Outcome of retrieving one view."""

    component: str
    document_path: str
    pages: int = 0
    images: int = 0
    entries: dict[str, str] = Field(default_factory=dict)


async def paginate(
    fetch_page: PageFetcher, params: dict[str, str], limit: int | None = None
) -> AsyncIterator[RetrievedPage]:
    """Yield pages until the server sends no ``next`` token or ``limit`` is reached.

    A ``None`` from ``fetch_page`` ends the sequence without error. Each
    ``next`` token is passed back as the ``root`` parameter of the
    following request.
    """
    request = dict(params)
    number = 1
    while True:
        data = await fetch_page(request)
        if data is None:
            return
        yield RetrievedPage(number=number, params=request, data=data)

        next_token = data.get("next")
        if not next_token:
            return
        if limit is not None and number >= limit:
            return
        number += 1
        request = {**params, PAGINATION_PARAM: str(next_token)}


async def remove_stale_pages(output_dir: Path, component: str, keep: int = 0) -> int:
    """Delete stored pages of ``component`` numbered above ``keep``; returns files removed."""
    pattern = re.compile(rf"{re.escape(component)}-(\d+)\.json")
    removed = 0
    for path in Path(output_dir).glob("*.json"):
        match = pattern.fullmatch(path.name)
        if match and int(match.group(1)) > keep:
            await aiofiles.os.remove(path)
            removed += 1
    if removed:
        logger.debug("Removed %d stale page(s) of %s", removed, component)
    return removed


class ViewRetriever:
    """Store every page of a view as ``<component>-<n>.json`` and index it."""

    def __init__(self, api: RemoteApi, assets: AssetDownloader, limit: int | None = None):
        self.api = api
        self.assets = assets
        self.limit = limit

    async def retrieve(self, view: ViewReference, output_dir: Path) -> ViewResult:
        remote = self.api.remote
        base_uri = make_absolute(remote, view.document_path)
        result = ViewResult(component=view.id, document_path=view.document_path)
        images: list[str] = []

        async def fetch_page(params: dict[str, str]) -> dict | None:
            data = await self.api.fetch_part(view.document_path, params)
            if data is None:
                return None
            if not data.get("content"):
                logger.warning("No content received for %s (%s)", view.document_path, params)
                return None
            return data

        async for page in paginate(fetch_page, view.parameters, self.limit):
            fragment = transform_fragment(page.data["content"], base_uri, remote, images)
            payload = {**page.data, "content": fragment.content}

            filename = f"{view.id}-{page.number}.json"
            await write_json(Path(output_dir) / filename, payload)
            result.pages += 1

            result.entries[fingerprint(page.params)] = filename
            ids = list(fragment.ids)
            if payload.get("id"):
                ids.append(str(payload["id"]))
            base_params = {k: v for k, v in page.params.items() if k != PAGINATION_PARAM}
            for elem_id in ids:
                result.entries[fingerprint({**base_params, "id": elem_id})] = filename

        result.images = await self.assets.download_images(images, Path(output_dir), base_uri)
        logger.debug(
            "Stored %d page(s) and %d image(s) for %s", result.pages, result.images, view.id
        )
        return result
