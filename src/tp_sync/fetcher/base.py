"""Base class for remote fetchers."""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from tp_sync.config import RemoteConfig

logger = logging.getLogger(__name__)

_MAX_RETRY_DELAY = 60.0


class ResponseKind(str, Enum):
    """How the body of a response should be decoded."""

    TEXT = "text"
    BYTES = "bytes"
    JSON = "json"


def parse_retry_after(value: str | None) -> float | None:
    """Seconds to wait according to a ``Retry-After`` header.

    Accepts delta-seconds or an HTTP date; anything else yields ``None``.
    """
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class FetchResult(BaseModel):
    """Outcome of one GET against the remote, decoded per ``ResponseKind``."""

    url: str
    status_code: int  # 0 when no response was received
    text: str = ""
    content: bytes = b""
    data: Any = None
    headers: dict[str, str] = Field(default_factory=dict)
    error: str | None = None
    retry_after: float | None = None
    attempts: int = 1

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300 and not self.error

    @property
    def transient(self) -> bool:
        """Rate limiting, server errors and lost connections are worth retrying."""
        if self.status_code == 429 or self.status_code >= 500:
            return True
        return self.status_code == 0 and bool(self.error)


class BaseFetcher(ABC):
    """GET requests against the remote with retries on transient failures."""

    def __init__(self, config: RemoteConfig):
        self.config = config

    @abstractmethod
    async def fetch(
        self,
        path: str,
        params: dict[str, str] | None = None,
        kind: ResponseKind = ResponseKind.TEXT,
    ) -> FetchResult:
        """Issue one GET request and return the decoded result."""

    def backoff_delay(self, attempt: int, result: FetchResult) -> float:
        """Exponential delay with jitter, never shorter than a ``Retry-After``."""
        delay = self.config.retry_base_delay * (2**attempt) + random.uniform(0, 0.5)
        if result.retry_after is not None:
            delay = max(delay, result.retry_after)
        return min(delay, _MAX_RETRY_DELAY)

    async def fetch_with_retry(
        self,
        path: str,
        params: dict[str, str] | None = None,
        kind: ResponseKind = ResponseKind.TEXT,
    ) -> FetchResult:
        """Fetch ``path``, retrying up to ``max_retries`` times while failures are transient."""
        attempts = self.config.max_retries + 1
        attempt = 0
        while True:
            result = await self.fetch(path, params, kind)
            result.attempts = attempt + 1
            if result.success or not result.transient or result.attempts >= attempts:
                return result
            delay = self.backoff_delay(attempt, result)
            logger.debug(
                "Retrying %s in %.1fs (%s, attempt %d of %d)",
                result.url,
                delay,
                result.error or f"HTTP {result.status_code}",
                result.attempts,
                attempts,
            )
            await asyncio.sleep(delay)
            attempt += 1
