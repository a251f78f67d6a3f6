"""Typed access to the publisher API endpoints."""

import logging
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

from tp_sync.fetcher.base import FetchResult, ResponseKind
from tp_sync.fetcher.remote_client import RemoteClient

logger = logging.getLogger(__name__)


def encode_path(path: str) -> str:
    """Percent-encode a document path as a single URL segment."""
    return quote(path, safe="")


class DocumentMeta(BaseModel):
    """Metadata record the server keeps for a document."""

    model_config = ConfigDict(populate_by_name=True)

    path: str = ""
    last_modified: str | None = Field(default=None, alias="lastModified")
    odd: str | None = None
    view: str | None = None
    template: str | None = None


class RemoteApi:
    """Endpoints of the remote API, layered over a ``RemoteClient``."""

    def __init__(self, client: RemoteClient):
        self.client = client

    @property
    def remote(self) -> str:
        return self.client.config.url

    async def load_meta(self, path: str) -> DocumentMeta | None:
        """Load the metadata of a document, or ``None`` if unavailable."""
        result = await self.client.get(
            f"api/document/{encode_path(path)}/meta", kind=ResponseKind.JSON
        )
        if result is None or not isinstance(result.data, dict):
            return None
        meta = DocumentMeta.model_validate(result.data)
        meta.path = path
        return meta

    async def fetch_part(self, path: str, params: dict[str, str]) -> dict | None:
        """Fetch one page of a document fragment as a JSON payload."""
        result = await self.client.get(
            f"api/parts/{encode_path(path)}/json", params=params, kind=ResponseKind.JSON
        )
        if result is None:
            return None
        if result.status_code != 200 or not isinstance(result.data, dict):
            logger.warning("Unexpected fragment response from %s", result.url)
            return None
        return result.data

    async def fetch_stylesheet(self, name: str) -> bytes | None:
        """Fetch the CSS generated for an ODD."""
        result = await self.client.get(f"transform/{name}.css", kind=ResponseKind.BYTES)
        return result.content if result else None

    async def fetch_collection(self, collection: str | None, start: int) -> FetchResult | None:
        """Fetch one listing page of a collection (root when ``collection`` is None)."""
        url = f"api/collection/{encode_path(collection)}" if collection else "api/collection/"
        return await self.client.get(url, params={"start": str(start)})

    async def fetch_binary(self, url: str) -> bytes | None:
        """Fetch raw bytes from an absolute URL."""
        result = await self.client.get(url, kind=ResponseKind.BYTES)
        if result is None or result.status_code != 200:
            return None
        return result.content

    async def fetch_text(self, url: str) -> str | None:
        """Fetch a resource as text."""
        result = await self.client.get(url)
        return result.text if result else None
