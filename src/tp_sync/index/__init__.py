"""Fingerprint index and secondary content indexing."""

from tp_sync.index.builder import IndexStore, fingerprint, merge_index
from tp_sync.index.secondary import (
    IndexContext,
    Indexer,
    SecondaryIndex,
    SelectorIndexer,
    extract_plain_text,
)

__all__ = [
    "IndexContext",
    "IndexStore",
    "Indexer",
    "SecondaryIndex",
    "SelectorIndexer",
    "extract_plain_text",
    "fingerprint",
    "merge_index",
]
