"""HTTP client bound to the remote publisher base URL."""

import logging

import httpx

from tp_sync.config import RemoteConfig
from tp_sync.fetcher.base import BaseFetcher, FetchResult, ResponseKind, parse_retry_after

logger = logging.getLogger(__name__)


class RemoteClient(BaseFetcher):
    """GET-only client resolving relative paths against the remote URL.

    Failures are never raised: ``get`` logs them with the failing URL and
    returns ``None`` so callers can skip the unit of work.
    """

    def __init__(
        self,
        config: RemoteConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.request_count = 0

    async def __aenter__(self):
        """Initialize HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.config.url,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept-Encoding": "identity",
            },
            follow_redirects=True,
            timeout=self.config.timeout_ms / 1000,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Clean up HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        path: str,
        params: dict[str, str] | None = None,
        kind: ResponseKind = ResponseKind.TEXT,
    ) -> FetchResult:
        """Fetch a remote resource via HTTP."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        self.request_count += 1
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            url = str(self._client.base_url.join(path))
            return FetchResult(url=url, status_code=0, error=str(e))

        url = str(response.url)
        headers = {k.lower(): v for k, v in response.headers.items()}
        retry_after: float | None = None
        if response.status_code == 429:
            retry_after = parse_retry_after(headers.get("retry-after"))

        result = FetchResult(
            url=url,
            status_code=response.status_code,
            headers=headers,
            retry_after=retry_after,
        )
        if not result.success:
            return result

        if kind == ResponseKind.BYTES:
            result.content = response.content
        elif kind == ResponseKind.JSON:
            try:
                result.data = response.json()
            except ValueError as e:
                result.error = f"Invalid JSON: {e}"
        else:
            result.text = response.text
        return result

    async def get(
        self,
        path: str,
        params: dict[str, str] | None = None,
        kind: ResponseKind = ResponseKind.TEXT,
    ) -> FetchResult | None:
        """Fetch with retries; return the result on success, else ``None``."""
        result = await self.fetch_with_retry(path, params, kind)
        if result.success:
            logger.debug("GET %s -> %s", result.url, result.status_code)
            return result
        logger.warning(
            "Failed to fetch %s: %s",
            result.url,
            result.error or f"HTTP {result.status_code}",
        )
        return None
