"""Template-grouped catalog of the documents found in collections."""

import logging

from pydantic import BaseModel

from tp_sync.fetcher.remote_api import DocumentMeta, RemoteApi

logger = logging.getLogger(__name__)

CATALOG_CACHE_KEY = "tp-teidocuments"


class CatalogEntry(BaseModel):
    """Rendering profile of one document."""

    path: str
    odd: str = "teipublisher"
    view: str = "div"
    template: str = "view"

    @classmethod
    def from_meta(cls, path: str, meta: DocumentMeta | None) -> "CatalogEntry":
        """Entry for ``path``; fields the server did not report keep their defaults."""
        entry = cls(path=path)
        if meta is None:
            return entry
        if meta.odd:
            entry.odd = meta.odd.removesuffix(".odd")
        if meta.view:
            entry.view = meta.view
        if meta.template:
            entry.template = meta.template.removesuffix(".html")
        return entry


Catalog = dict[str, list[dict[str, str]]]


async def build_catalog(paths: list[str], api: RemoteApi) -> Catalog:
    """Load the metadata of every path and group the entries by template.

    Documents without metadata fall back to the default profile.
    """
    logger.debug("Retrieving document metadata ...")
    catalog: Catalog = {}
    for path in paths:
        meta = await api.load_meta(path)
        if meta is None:
            logger.warning("No metadata for %s, using defaults", path)
        entry = CatalogEntry.from_meta(path, meta)
        catalog.setdefault(entry.template, []).append(entry.model_dump())
    return catalog
