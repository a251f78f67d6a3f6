"""Local persistence: artifacts and the content cache."""

from tp_sync.storage.artifacts import append_line, read_json, write_atomic, write_json
from tp_sync.storage.cache import CacheKind, ContentCache, parse_duration

__all__ = [
    "CacheKind",
    "ContentCache",
    "append_line",
    "parse_duration",
    "read_json",
    "write_atomic",
    "write_json",
]
