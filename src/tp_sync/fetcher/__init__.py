"""Access to the remote publisher API."""

from tp_sync.fetcher.base import BaseFetcher, FetchResult, ResponseKind, parse_retry_after
from tp_sync.fetcher.remote_api import DocumentMeta, RemoteApi, encode_path
from tp_sync.fetcher.remote_client import RemoteClient

__all__ = [
    "BaseFetcher",
    "DocumentMeta",
    "FetchResult",
    "RemoteApi",
    "RemoteClient",
    "ResponseKind",
    "encode_path",
    "parse_retry_after",
]
