"""Discovery of documents through the remote collection listings."""

from tp_sync.discovery.catalog import CATALOG_CACHE_KEY, Catalog, CatalogEntry, build_catalog
from tp_sync.discovery.crawler import CollectionCrawler, CollectionNode, ListingPage, parse_listing

__all__ = [
    "CATALOG_CACHE_KEY",
    "Catalog",
    "CatalogEntry",
    "CollectionCrawler",
    "CollectionNode",
    "ListingPage",
    "build_catalog",
    "parse_listing",
]
