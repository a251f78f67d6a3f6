"""Shared fixtures: a fake publisher served through httpx.MockTransport."""

import json
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from rich.console import Console

from tp_sync.config import CacheConfig, RemoteConfig, SyncConfig
from tp_sync.fetcher import RemoteApi, RemoteClient
from tp_sync.orchestrator import Synchronizer

REMOTE = "http://remote/"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeRemote:
    """Route table keyed by decoded URL path; records every request."""

    def __init__(self):
        self.routes: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []

    def route(self, path: str, handler: Handler) -> None:
        self.routes[path] = handler

    def json(self, path: str, data, status: int = 200) -> None:
        self.route(path, lambda request: httpx.Response(status, json=data))

    def text(self, path: str, body: str, headers: dict | None = None) -> None:
        self.route(path, lambda request: httpx.Response(200, text=body, headers=headers))

    def binary(self, path: str, body: bytes) -> None:
        self.route(path, lambda request: httpx.Response(200, content=body))

    def requests_to(self, prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(prefix)]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, text="not found")
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


def parts_handler(pages: list[dict]) -> Handler:
    """Serve ``pages`` in order; page n is requested with ``root=<n>``."""

    def handler(request: httpx.Request) -> httpx.Response:
        root = request.url.params.get("root")
        index = int(root) - 1 if root else 0
        return httpx.Response(200, content=json.dumps(pages[index]).encode("utf-8"))

    return handler


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    path = tmp_path / "_site"
    path.mkdir()
    return path


@pytest.fixture
def config(tmp_path: Path, site_dir: Path) -> SyncConfig:
    return SyncConfig(
        remote=RemoteConfig(url=REMOTE, max_retries=0, retry_base_delay=0.0),
        output_dir=site_dir,
        cache=CacheConfig(enabled=True, directory=tmp_path / ".cache"),
        disabled=False,
    )


@pytest_asyncio.fixture
async def api(config: SyncConfig, remote: FakeRemote):
    async with RemoteClient(config.remote, transport=remote.transport) as client:
        yield RemoteApi(client)


@pytest_asyncio.fixture
async def synchronizer(config: SyncConfig, remote: FakeRemote):
    async with Synchronizer(config, Console(quiet=True), transport=remote.transport) as sync:
        yield sync
