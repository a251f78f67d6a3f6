"""Tests for pagination and view retrieval."""

import json

import httpx

from tp_sync.index import fingerprint
from tp_sync.transform import AssetDownloader, ViewReference, ViewRetriever, paginate

from .conftest import parts_handler


def numbered_pages(count: int) -> list[dict]:
    pages = []
    for n in range(1, count + 1):
        page = {"content": f'<div id="p{n}">page {n}</div>'}
        if n < count:
            page["next"] = str(n + 1)
        pages.append(page)
    return pages


def make_fetcher(pages: list[dict], calls: list[dict]):
    async def fetch_page(params):
        calls.append(dict(params))
        root = params.get("root")
        index = int(root) - 1 if root else 0
        return pages[index] if index < len(pages) else None

    return fetch_page


async def collect(iterator):
    return [page async for page in iterator]


async def test_paginate_until_no_next_token():
    calls: list[dict] = []
    pages = await collect(paginate(make_fetcher(numbered_pages(4), calls), {"view": "div"}))
    assert [p.number for p in pages] == [1, 2, 3, 4]
    assert calls[0] == {"view": "div"}
    assert calls[1] == {"view": "div", "root": "2"}
    assert calls[3] == {"view": "div", "root": "4"}


async def test_paginate_stops_at_limit():
    calls: list[dict] = []
    pages = await collect(paginate(make_fetcher(numbered_pages(5), calls), {}, limit=2))
    assert len(pages) == 2
    assert len(calls) == 2


async def test_paginate_limit_above_page_count():
    calls: list[dict] = []
    pages = await collect(paginate(make_fetcher(numbered_pages(3), calls), {}, limit=10))
    assert len(pages) == 3


async def test_paginate_stops_on_failed_page():
    calls: list[dict] = []
    pages = numbered_pages(3)
    pages[2]["next"] = "9"
    result = await collect(paginate(make_fetcher(pages, calls), {}))
    assert len(result) == 3
    assert len(calls) == 4


def view(params=None) -> ViewReference:
    return ViewReference(
        id="v1", source_id="doc", document_path="works/1", parameters=params or {"view": "div"}
    )


async def test_retriever_writes_pages_and_index_entries(api, remote, tmp_path):
    pages = numbered_pages(3)
    pages[0]["id"] = "front"
    remote.route("/api/parts/works/1/json", parts_handler(pages))

    retriever = ViewRetriever(api, AssetDownloader(api))
    result = await retriever.retrieve(view(), tmp_path)

    assert result.pages == 3
    assert sorted(p.name for p in tmp_path.glob("*.json")) == [
        "v1-1.json",
        "v1-2.json",
        "v1-3.json",
    ]
    assert result.entries[fingerprint({"view": "div"})] == "v1-1.json"
    assert result.entries[fingerprint({"view": "div", "root": "2"})] == "v1-2.json"
    assert result.entries[fingerprint({"view": "div", "id": "p3"})] == "v1-3.json"
    assert result.entries[fingerprint({"view": "div", "id": "front"})] == "v1-1.json"
    assert set(result.entries.values()) == {"v1-1.json", "v1-2.json", "v1-3.json"}

    stored = json.loads((tmp_path / "v1-2.json").read_text())
    assert stored == {"content": '<div id="p2">page 2</div>', "next": "3"}


async def test_retriever_respects_limit(api, remote, tmp_path):
    remote.route("/api/parts/works/1/json", parts_handler(numbered_pages(5)))
    retriever = ViewRetriever(api, AssetDownloader(api), limit=2)
    result = await retriever.retrieve(view(), tmp_path)
    assert result.pages == 2
    assert len(remote.requests_to("/api/parts")) == 2
    assert not (tmp_path / "v1-3.json").exists()


async def test_retriever_stops_on_missing_content(api, remote, tmp_path):
    remote.route(
        "/api/parts/works/1/json", parts_handler([{"content": "<p>one</p>", "next": "2"}, {}])
    )
    result = await ViewRetriever(api, AssetDownloader(api)).retrieve(view(), tmp_path)
    assert result.pages == 1
    assert not (tmp_path / "v1-2.json").exists()


async def test_retriever_survives_server_error(api, remote, tmp_path):
    remote.route("/api/parts/works/1/json", lambda request: httpx.Response(500))
    result = await ViewRetriever(api, AssetDownloader(api)).retrieve(view(), tmp_path)
    assert result.pages == 0
    assert result.entries == {}
    assert list(tmp_path.glob("*.json")) == []


async def test_retriever_downloads_remote_images_only(api, remote, tmp_path):
    content = '<p><img src="images/a.png"/><img src="http://elsewhere.org/b.png"/></p>'
    remote.route("/api/parts/works/1/json", parts_handler([{"content": content}]))
    remote.binary("/works/images/a.png", b"PNG")

    result = await ViewRetriever(api, AssetDownloader(api)).retrieve(view(), tmp_path)

    assert result.images == 1
    assert (tmp_path / "images" / "a.png").read_bytes() == b"PNG"
    assert not remote.requests_to("/b.png")
