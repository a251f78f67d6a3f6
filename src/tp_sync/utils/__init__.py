"""Utility functions and classes."""

from tp_sync.utils.url_utils import download_target, is_remote_url, to_site_path
from tp_sync.utils.work_queue import DirectoryLocks, WorkQueue

__all__ = [
    "DirectoryLocks",
    "WorkQueue",
    "download_target",
    "is_remote_url",
    "to_site_path",
]
