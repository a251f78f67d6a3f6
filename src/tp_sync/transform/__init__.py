"""Retrieval and rewriting of the data behind embedded views."""

from tp_sync.transform.assets import AssetDownloader
from tp_sync.transform.fragment import TransformedFragment, transform_fragment
from tp_sync.transform.page import PageContext, PageResult, PageTransformer
from tp_sync.transform.params import ParameterBuilder, ViewReference
from tp_sync.transform.staleness import Staleness, carry_forward, check_staleness
from tp_sync.transform.views import (
    RetrievedPage,
    ViewResult,
    ViewRetriever,
    paginate,
    remove_stale_pages,
)

__all__ = [
    "AssetDownloader",
    "PageContext",
    "PageResult",
    "PageTransformer",
    "ParameterBuilder",
    "RetrievedPage",
    "Staleness",
    "TransformedFragment",
    "ViewReference",
    "ViewResult",
    "ViewRetriever",
    "carry_forward",
    "check_staleness",
    "paginate",
    "remove_stale_pages",
    "transform_fragment",
]
