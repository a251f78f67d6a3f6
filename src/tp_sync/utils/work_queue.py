"""Bounded admission of page-transform jobs."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkQueue:
    """Semaphore-based worker pool.

    At most ``concurrency`` jobs run at once; a job that has been admitted
    always runs to completion.
    """

    def __init__(self, concurrency: int = 2):
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self.active = 0
        self.peak_active = 0
        self.completed = 0
        self.failed = 0

    async def submit(self, job: Callable[[], Awaitable[T]]) -> T:
        """Wait for a free slot, then run ``job`` and return its result."""
        async with self._semaphore:
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
            try:
                result = await job()
            except Exception:
                self.failed += 1
                raise
            finally:
                self.active -= 1
            self.completed += 1
            return result

    async def run_all(
        self, jobs: Iterable[tuple[str, Callable[[], Awaitable[T]]]]
    ) -> list[T | BaseException]:
        """Run labelled jobs through the pool.

        A failing job is logged and returned as its exception; the other
        jobs keep running.
        """
        labelled = list(jobs)
        results = await asyncio.gather(
            *(self.submit(job) for _, job in labelled), return_exceptions=True
        )
        for (label, _), result in zip(labelled, results):
            if isinstance(result, Exception):
                logger.error("Job %s failed: %s", label, result)
        return results


class DirectoryLocks:
    """One lock per output directory.

    Serializes read/merge/write cycles against a directory's index file
    while jobs on different directories proceed in parallel.
    """

    def __init__(self):
        self._locks: dict[Path, asyncio.Lock] = {}

    def lock_for(self, directory: Path) -> asyncio.Lock:
        key = Path(directory).resolve()
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock
