"""On-disk key/value cache with a freshness window."""

import hashlib
import json
import logging
import re
import time
from enum import Enum
from pathlib import Path
from typing import Any

import aiofiles  # type: ignore[import-untyped]

from tp_sync.storage.artifacts import write_atomic

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([smhdwy]?)\s*$")
_UNIT_SECONDS = {
    "": 1,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
    "y": 365 * 86400,
}

ONE_DAY = 86400.0


class CacheKind(str, Enum):
    """Storage format of a cached value."""

    TEXT = "text"
    JSON = "json"
    BUFFER = "buffer"


def parse_duration(value: str | float | int) -> float:
    """Convert ``"1d"``, ``"12h"``, ``"30m"`` or a number of seconds into seconds."""
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return float(amount) * _UNIT_SECONDS[unit]


class ContentCache:
    """Cache values under ``directory``, one record per hashed key.

    A disabled cache is never fresh and ignores writes.
    """

    def __init__(self, directory: Path, enabled: bool = True):
        self.directory = Path(directory)
        self.enabled = enabled
        self.hits = 0
        self.misses = 0

    @staticmethod
    def hash_key(key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def _record_path(self, key: str) -> Path:
        return self.directory / f"{self.hash_key(key)}.json"

    def _buffer_path(self, key: str) -> Path:
        return self.directory / f"{self.hash_key(key)}.bin"

    async def _load_record(self, key: str) -> dict | None:
        path = self._record_path(key)
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                return json.loads(await f.read())
        except (OSError, ValueError):
            logger.debug("Unreadable cache record %s", path, exc_info=True)
            return None

    async def is_fresh(self, key: str, max_age: str | float = ONE_DAY) -> bool:
        """Whether a value for ``key`` was saved less than ``max_age`` ago."""
        if not self.enabled:
            return False
        record = await self._load_record(key)
        if record is None or not self._value_present(key, record):
            self.misses += 1
            return False
        age = time.time() - float(record.get("saved_at", 0))
        fresh = age < parse_duration(max_age)
        if fresh:
            self.hits += 1
        else:
            self.misses += 1
        logger.debug("Cache %s for %s (age: %.1fs)", "hit" if fresh else "stale", key, age)
        return fresh

    def _value_present(self, key: str, record: dict) -> bool:
        """Buffer values live in a sibling file that may have been removed."""
        if record.get("kind") != CacheKind.BUFFER.value:
            return True
        return self._buffer_path(key).exists()

    async def read(self, key: str) -> Any:
        """Return the cached value for ``key``; raises ``KeyError`` when absent."""
        record = await self._load_record(key)
        if record is None or not self._value_present(key, record):
            raise KeyError(key)
        if record.get("kind") == CacheKind.BUFFER.value:
            async with aiofiles.open(self._buffer_path(key), "rb") as f:
                return await f.read()
        return record.get("value")

    async def write(self, key: str, value: Any, kind: CacheKind = CacheKind.TEXT) -> None:
        """Store ``value`` for ``key`` and stamp it with the current time."""
        if not self.enabled:
            return
        record: dict[str, Any] = {"key": key, "kind": kind.value, "saved_at": time.time()}
        if kind == CacheKind.BUFFER:
            await write_atomic(self._buffer_path(key), bytes(value))
        else:
            record["value"] = value
        await write_atomic(self._record_path(key), json.dumps(record, ensure_ascii=False))
